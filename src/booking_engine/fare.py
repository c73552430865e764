import logging

from pydantic import BaseModel

from .models.rates import RateArray, RateQuote, SharesArray, Vehicle
from .models.trip import ServiceType

logger = logging.getLogger(__name__)


class FareBreakdown(BaseModel):
    """Outbound and return totals derived from a rate quote."""

    subtotal: float
    grand_total: float
    return_subtotal: float = 0.0
    return_grand_total: float = 0.0
    shares: SharesArray | None = None
    return_shares: SharesArray | None = None
    # True when computed from the vehicle's static rates because no quote was available
    degraded: bool = False

    @property
    def combined_total(self) -> float:
        return self.grand_total + self.return_grand_total


class LegTotals(BaseModel):
    all_inclusive_base: float
    total: float
    uplift: float
    subtotal: float
    grand_total: float


class FareCalculator:
    """Turns a rate quote plus trip parameters into a fare breakdown."""

    ALL_INCLUSIVE_UPLIFT = 0.25
    HOURLY_RATE_ITEM = "Base_Rate"
    GRATUITY_ITEM = "Extra_Gratuity"
    GRATUITY_ADMIN_SHARE = 0.25
    CARD_FEE_RATE = 0.05
    CARD_FEE_FIXED = 0.30

    def leg_totals(
        self,
        rate_array: RateArray,
        service_type: ServiceType,
        charter_hours: int | None,
        vehicle_count: int,
        min_rate_involved: bool,
    ) -> LegTotals:
        scale_hourly = service_type is ServiceType.CHARTER_TOUR and not min_rate_involved
        hours = charter_hours or 0

        all_inclusive_base = 0.0
        for name, item in rate_array.all_inclusive_rates.items():
            if scale_hourly and name == self.HOURLY_RATE_ITEM:
                all_inclusive_base += item.baserate * hours
            else:
                all_inclusive_base += item.baserate

        total = all_inclusive_base
        total += sum(item.baserate for item in rate_array.amenities.values())
        total += sum(item.amount for item in rate_array.taxes.values())
        total += sum(item.baserate for item in rate_array.misc.values())

        uplift = all_inclusive_base * self.ALL_INCLUSIVE_UPLIFT
        subtotal = total + uplift

        return LegTotals(
            all_inclusive_base=all_inclusive_base,
            total=total,
            uplift=uplift,
            subtotal=subtotal,
            grand_total=subtotal * vehicle_count,
        )

    def shares_array(
        self,
        rate_array: RateArray,
        service_type: ServiceType,
        charter_hours: int | None,
        min_rate_involved: bool,
        return_grand_total: float | None = None,
    ) -> SharesArray:
        """Revenue split for one leg, always priced as a single vehicle."""
        totals = self.leg_totals(rate_array, service_type, charter_hours, 1, min_rate_involved)

        base_item = rate_array.all_inclusive_rates.get(self.HOURLY_RATE_ITEM)
        gratuity_item = rate_array.misc.get(self.GRATUITY_ITEM)
        gratuity_share = (gratuity_item.amount if gratuity_item else 0.0) * self.GRATUITY_ADMIN_SHARE

        admin_share = totals.uplift
        card_fee = totals.grand_total * self.CARD_FEE_RATE + self.CARD_FEE_FIXED
        return SharesArray(
            base_rate=base_item.baserate if base_item else 0.0,
            grand_total=totals.grand_total,
            stripe_fee=card_fee,
            admin_share=admin_share,
            deducted_admin_share=admin_share - card_fee,
            affiliate_share=totals.grand_total - (admin_share + gratuity_share),
            return_grand_total=return_grand_total,
        )

    def calculate(
        self,
        quote: RateQuote | None,
        service_type: ServiceType,
        charter_hours: int | None,
        vehicle_count: int,
        min_rate_involved: bool | None = None,
        vehicle: Vehicle | None = None,
    ) -> FareBreakdown:
        """
        Calculate the fare for a booking.

        Without a quote the vehicle's static rate fields for the service type
        are used instead (degraded mode, no uplift).
        """
        if vehicle_count < 1:
            raise ValueError("Vehicle count must be at least 1")
        if charter_hours is not None and charter_hours < 0:
            raise ValueError("Charter hours must be non-negative")

        if quote is None:
            return self._static_fare(vehicle, service_type, vehicle_count)

        if min_rate_involved is None:
            min_rate_involved = quote.min_rate_involved

        outbound = self.leg_totals(
            quote.rate_array, service_type, charter_hours, vehicle_count, min_rate_involved
        )

        return_subtotal = 0.0
        return_grand_total = 0.0
        return_shares = None
        return_quote = quote.return_quote
        if service_type is ServiceType.ROUND_TRIP and return_quote is not None:
            inbound = self.leg_totals(
                return_quote.rate_array,
                service_type,
                charter_hours,
                vehicle_count,
                min_rate_involved,
            )
            return_subtotal = inbound.subtotal
            return_grand_total = inbound.grand_total
            return_shares = self.shares_array(
                return_quote.rate_array, service_type, charter_hours, min_rate_involved
            )
        elif service_type is ServiceType.ROUND_TRIP:
            logger.debug("Round trip quote has no return rate array")

        shares = self.shares_array(
            quote.rate_array,
            service_type,
            charter_hours,
            min_rate_involved,
            return_grand_total=return_grand_total if return_shares is not None else None,
        )
        return FareBreakdown(
            subtotal=outbound.subtotal,
            grand_total=outbound.grand_total,
            return_subtotal=return_subtotal,
            return_grand_total=return_grand_total,
            shares=shares,
            return_shares=return_shares,
        )

    def _static_fare(
        self, vehicle: Vehicle | None, service_type: ServiceType, vehicle_count: int
    ) -> FareBreakdown:
        breakdown = vehicle.rate_breakdown(service_type) if vehicle is not None else None
        if breakdown is None:
            return FareBreakdown(subtotal=0.0, grand_total=0.0, degraded=True)

        subtotal = breakdown.sub_total or breakdown.total or 0.0
        static_total = breakdown.grand_total or breakdown.total or 0.0
        return FareBreakdown(
            subtotal=subtotal,
            grand_total=static_total * vehicle_count,
            degraded=True,
        )


def format_amount(amount: float, symbol: str = "$") -> str:
    """Two-decimal display rendering; the only place fares are rounded."""
    return f"{symbol}{amount:,.2f}"
