"""Rate quote models returned by the booking backend."""

from pydantic import BaseModel, ConfigDict, Field

from .trip import ServiceType


class RateItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate_label: str = ""
    baserate: float = 0.0
    multiple: float | None = None
    percentage: float | None = None
    amount: float = 0.0
    type: str | None = None
    flat_baserate: float | None = None


class TaxItem(BaseModel):
    """Tax line item; its contribution to the fare is ``amount``, not ``baserate``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate_label: str = ""
    baserate: float = 0.0
    flat_baserate: float | None = None
    multiple: float | None = None
    percentage: float | None = None
    amount: float = 0.0
    type: str | None = None


class RateArray(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    all_inclusive_rates: dict[str, RateItem] = Field(default_factory=dict)
    amenities: dict[str, RateItem] = Field(default_factory=dict)
    taxes: dict[str, TaxItem] = Field(default_factory=dict)
    misc: dict[str, RateItem] = Field(default_factory=dict)


class RateQuote(BaseModel):
    """Immutable pricing snapshot for one leg, optionally carrying the return leg's."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate_array: RateArray = Field(default_factory=RateArray, alias="rateArray")
    min_rate_involved: bool = False
    # Backend spells the field "retrunRateArray"
    return_rate_array: RateArray | None = Field(default=None, alias="retrunRateArray")
    sub_total: float | None = None
    grand_total: float | None = None
    currency_symbol: str = "$"

    @property
    def return_quote(self) -> "RateQuote | None":
        if self.return_rate_array is None:
            return None
        return RateQuote(
            rate_array=self.return_rate_array,
            min_rate_involved=self.min_rate_involved,
            currency_symbol=self.currency_symbol,
        )


class StaticRateBreakdown(BaseModel):
    """Rate fields a vehicle listing carries for one service type."""

    model_config = ConfigDict(frozen=True)

    sub_total: float | None = None
    total: float | None = None
    grand_total: float | None = None


class Vehicle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    is_master_vehicle: bool = False
    rate_breakdown_one_way: StaticRateBreakdown | None = None
    rate_breakdown_round_trip: StaticRateBreakdown | None = None
    rate_breakdown_charter_tour: StaticRateBreakdown | None = None

    def rate_breakdown(self, service_type: ServiceType) -> StaticRateBreakdown | None:
        return {
            ServiceType.ONE_WAY: self.rate_breakdown_one_way,
            ServiceType.ROUND_TRIP: self.rate_breakdown_round_trip,
            ServiceType.CHARTER_TOUR: self.rate_breakdown_charter_tour,
        }[service_type]


class SharesArray(BaseModel):
    """How one leg's single-vehicle fare splits between the platform and the affiliate."""

    model_config = ConfigDict(frozen=True)

    base_rate: float = Field(serialization_alias="baseRate")
    grand_total: float = Field(serialization_alias="grandTotal")
    stripe_fee: float = Field(serialization_alias="stripeFee")
    admin_share: float = Field(serialization_alias="adminShare")
    deducted_admin_share: float
    affiliate_share: float = Field(serialization_alias="affiliateShare")
    return_grand_total: float | None = Field(default=None, serialization_alias="returnGrandTotal")
