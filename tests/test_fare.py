import pytest

from booking_engine.fare import FareBreakdown, FareCalculator, format_amount
from booking_engine.models.rates import RateQuote, StaticRateBreakdown
from booking_engine.models.trip import ServiceType
from tests.factories import make_quote, make_rate_array, make_vehicle


@pytest.fixture
def calculator() -> FareCalculator:
    return FareCalculator()


@pytest.mark.unit
@pytest.mark.critical
class TestLegTotals:
    def test_charter_hours_multiply_base_rate(self, calculator: FareCalculator):
        totals = calculator.leg_totals(
            make_rate_array(100.0), ServiceType.CHARTER_TOUR, 3, 1, min_rate_involved=False
        )
        assert totals.all_inclusive_base == pytest.approx(300.0)
        assert totals.uplift == pytest.approx(75.0)
        assert totals.subtotal == pytest.approx(375.0)
        assert totals.grand_total == pytest.approx(375.0)

    def test_hours_only_scale_the_base_rate_item(self, calculator: FareCalculator):
        rates = make_rate_array(100.0, Fuel_Surcharge=20.0)
        totals = calculator.leg_totals(rates, ServiceType.CHARTER_TOUR, 2, 1, False)
        assert totals.all_inclusive_base == pytest.approx(220.0)

    def test_one_way_ignores_hours(self, calculator: FareCalculator):
        totals = calculator.leg_totals(make_rate_array(100.0), ServiceType.ONE_WAY, 5, 1, False)
        assert totals.all_inclusive_base == pytest.approx(100.0)
        assert totals.subtotal == pytest.approx(125.0)

    def test_min_rate_suppresses_hours_multiplier(self, calculator: FareCalculator):
        totals = calculator.leg_totals(
            make_rate_array(100.0), ServiceType.CHARTER_TOUR, 3, 1, min_rate_involved=True
        )
        assert totals.all_inclusive_base == pytest.approx(100.0)
        assert totals.subtotal == pytest.approx(125.0)

    def test_uplift_applies_to_all_inclusive_only(self, calculator: FareCalculator):
        rates = make_rate_array(
            100.0,
            amenities={"Child_Seat": 15.0},
            taxes={"State_Tax": 8.5},
            misc={"Toll": 12.0},
        )
        totals = calculator.leg_totals(rates, ServiceType.ONE_WAY, None, 1, False)
        assert totals.total == pytest.approx(135.5)
        assert totals.uplift == pytest.approx(25.0)
        assert totals.subtotal == pytest.approx(160.5)

    def test_taxes_contribute_amount_not_baserate(self, calculator: FareCalculator):
        rates = make_rate_array(100.0, taxes={"Airport_Fee": 4.0})
        rates = rates.model_copy(
            update={
                "taxes": {
                    "Airport_Fee": rates.taxes["Airport_Fee"].model_copy(update={"baserate": 99.0})
                }
            }
        )
        totals = calculator.leg_totals(rates, ServiceType.ONE_WAY, None, 1, False)
        assert totals.total == pytest.approx(104.0)

    def test_grand_total_scales_with_vehicle_count(self, calculator: FareCalculator):
        totals = calculator.leg_totals(make_rate_array(100.0), ServiceType.ONE_WAY, None, 3, False)
        assert totals.grand_total == pytest.approx(totals.subtotal * 3)


@pytest.mark.unit
@pytest.mark.critical
class TestCalculate:
    def test_charter_tour_example(self, calculator: FareCalculator):
        fare = calculator.calculate(make_quote(100.0), ServiceType.CHARTER_TOUR, 3, 1)
        assert fare.subtotal == pytest.approx(375.0)
        assert fare.grand_total == pytest.approx(375.0)
        assert fare.return_subtotal == 0.0
        assert fare.return_grand_total == 0.0

    def test_identical_inputs_give_identical_results(self, calculator: FareCalculator):
        quote = make_quote(100.0, return_base_rate=80.0, taxes={"Tax": 3.0})
        first = calculator.calculate(quote, ServiceType.ROUND_TRIP, None, 2)
        calculator.calculate(make_quote(999.0), ServiceType.CHARTER_TOUR, 9, 4)
        second = FareCalculator().calculate(quote, ServiceType.ROUND_TRIP, None, 2)
        assert first == second

    def test_round_trip_combined_total(self, calculator: FareCalculator):
        # 160 * 1.25 = 200 outbound, 120 * 1.25 = 150 return
        quote = make_quote(160.0, return_base_rate=120.0)
        fare = calculator.calculate(quote, ServiceType.ROUND_TRIP, None, 1)
        assert fare.grand_total == pytest.approx(200.0)
        assert fare.return_grand_total == pytest.approx(150.0)
        assert fare.combined_total == pytest.approx(350.0)

    def test_return_quote_ignored_unless_round_trip(self, calculator: FareCalculator):
        quote = make_quote(160.0, return_base_rate=120.0)
        fare = calculator.calculate(quote, ServiceType.ONE_WAY, None, 1)
        assert fare.return_grand_total == 0.0
        assert fare.combined_total == pytest.approx(200.0)

    def test_round_trip_without_return_quote(self, calculator: FareCalculator):
        fare = calculator.calculate(make_quote(100.0), ServiceType.ROUND_TRIP, None, 1)
        assert fare.return_subtotal == 0.0

    def test_quote_min_rate_flag_is_used_by_default(self, calculator: FareCalculator):
        quote = make_quote(100.0, min_rate_involved=True)
        fare = calculator.calculate(quote, ServiceType.CHARTER_TOUR, 3, 1)
        assert fare.subtotal == pytest.approx(125.0)

    def test_explicit_min_rate_flag_overrides_quote(self, calculator: FareCalculator):
        quote = make_quote(100.0, min_rate_involved=True)
        fare = calculator.calculate(quote, ServiceType.CHARTER_TOUR, 3, 1, min_rate_involved=False)
        assert fare.subtotal == pytest.approx(375.0)

    def test_vehicle_count_scales_both_legs(self, calculator: FareCalculator):
        quote = make_quote(160.0, return_base_rate=120.0)
        fare = calculator.calculate(quote, ServiceType.ROUND_TRIP, None, 3)
        assert fare.grand_total == pytest.approx(600.0)
        assert fare.return_grand_total == pytest.approx(450.0)
        assert fare.subtotal == pytest.approx(200.0)

    def test_rejects_vehicle_count_below_one(self, calculator: FareCalculator):
        with pytest.raises(ValueError):
            calculator.calculate(make_quote(), ServiceType.ONE_WAY, None, 0)

    def test_rejects_negative_hours(self, calculator: FareCalculator):
        with pytest.raises(ValueError):
            calculator.calculate(make_quote(), ServiceType.CHARTER_TOUR, -1, 1)

    def test_empty_quote_is_zero(self, calculator: FareCalculator):
        fare = calculator.calculate(RateQuote(), ServiceType.ONE_WAY, None, 1)
        assert fare.subtotal == 0.0
        assert fare.grand_total == 0.0
        assert fare.degraded is False


@pytest.mark.unit
class TestSharesArray:
    def test_single_vehicle_split(self, calculator: FareCalculator):
        shares = calculator.shares_array(
            make_rate_array(100.0, taxes={"State_Tax": 8.0}), ServiceType.ONE_WAY, None, False
        )

        assert shares.base_rate == pytest.approx(100.0)
        assert shares.grand_total == pytest.approx(133.0)
        assert shares.admin_share == pytest.approx(25.0)
        assert shares.stripe_fee == pytest.approx(133.0 * 0.05 + 0.30)
        assert shares.deducted_admin_share == pytest.approx(25.0 - (133.0 * 0.05 + 0.30))
        assert shares.affiliate_share == pytest.approx(108.0)
        assert shares.return_grand_total is None

    def test_gratuity_share_comes_off_affiliate(self, calculator: FareCalculator):
        rates = make_rate_array(100.0, misc={"Extra_Gratuity": 20.0})
        gratuity = rates.misc["Extra_Gratuity"].model_copy(update={"amount": 20.0})
        rates = rates.model_copy(update={"misc": {"Extra_Gratuity": gratuity}})

        shares = calculator.shares_array(rates, ServiceType.ONE_WAY, None, False)

        assert shares.grand_total == pytest.approx(145.0)
        assert shares.affiliate_share == pytest.approx(145.0 - 25.0 - 5.0)

    def test_charter_hours_scale_shares(self, calculator: FareCalculator):
        shares = calculator.shares_array(make_rate_array(100.0), ServiceType.CHARTER_TOUR, 3, False)
        assert shares.grand_total == pytest.approx(375.0)
        assert shares.admin_share == pytest.approx(75.0)

        flat = calculator.shares_array(make_rate_array(100.0), ServiceType.CHARTER_TOUR, 3, True)
        assert flat.grand_total == pytest.approx(125.0)

    def test_calculate_ignores_vehicle_count_for_shares(self, calculator: FareCalculator):
        fare = calculator.calculate(make_quote(100.0), ServiceType.ONE_WAY, None, 3)

        assert fare.grand_total == pytest.approx(375.0)
        assert fare.shares.grand_total == pytest.approx(125.0)
        assert fare.return_shares is None

    def test_round_trip_has_return_shares(self, calculator: FareCalculator):
        fare = calculator.calculate(
            make_quote(100.0, return_base_rate=80.0), ServiceType.ROUND_TRIP, None, 2
        )

        assert fare.return_shares.grand_total == pytest.approx(100.0)
        assert fare.return_shares.return_grand_total is None
        assert fare.shares.return_grand_total == pytest.approx(fare.return_grand_total)

    def test_wire_names(self, calculator: FareCalculator):
        shares = calculator.shares_array(make_rate_array(100.0), ServiceType.ONE_WAY, None, False)
        data = shares.model_dump(by_alias=True, exclude_none=True)

        assert set(data) == {
            "baseRate",
            "grandTotal",
            "stripeFee",
            "adminShare",
            "deducted_admin_share",
            "affiliateShare",
        }


@pytest.mark.unit
class TestStaticFallback:
    def test_uses_vehicle_static_rates_without_uplift(self, calculator: FareCalculator):
        fare = calculator.calculate(None, ServiceType.ONE_WAY, None, 2, vehicle=make_vehicle())
        assert fare.degraded is True
        assert fare.subtotal == pytest.approx(90.0)
        assert fare.grand_total == pytest.approx(220.0)

    def test_falls_back_to_total_when_fields_missing(self, calculator: FareCalculator):
        fare = calculator.calculate(None, ServiceType.ROUND_TRIP, None, 2, vehicle=make_vehicle())
        assert fare.subtotal == pytest.approx(180.0)
        assert fare.grand_total == pytest.approx(360.0)

    def test_service_type_without_static_rates(self, calculator: FareCalculator):
        fare = calculator.calculate(None, ServiceType.CHARTER_TOUR, 2, 1, vehicle=make_vehicle())
        assert fare == FareBreakdown(subtotal=0.0, grand_total=0.0, degraded=True)

    def test_no_quote_and_no_vehicle(self, calculator: FareCalculator):
        fare = calculator.calculate(None, ServiceType.ONE_WAY, None, 1)
        assert fare.degraded is True
        assert fare.grand_total == 0.0

    def test_static_breakdown_alone(self, calculator: FareCalculator):
        vehicle = make_vehicle(rate_breakdown_one_way=StaticRateBreakdown(grand_total=50.0))
        fare = calculator.calculate(None, ServiceType.ONE_WAY, None, 1, vehicle=vehicle)
        assert fare.subtotal == 0.0
        assert fare.grand_total == pytest.approx(50.0)


@pytest.mark.unit
def test_format_amount():
    assert format_amount(1234.5) == "$1,234.50"
    assert format_amount(0.5, "€") == "€0.50"
