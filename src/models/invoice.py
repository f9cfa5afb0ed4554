from pydantic import BaseModel, Field


class EquipmentItem(BaseModel):
    description: str | None = Field(default=None)
    serial_number: str | None = Field(default=None)
    rental_days: int | None = Field(default=None)
    day_rate: float = Field(default=0.0)
    week_rate: float = Field(default=0.0)
    four_week_rate: float = Field(default=0.0)
    amount: float = Field(default=0.0)
    calculated_amount: float = Field(default=0.0)  # amount, or the tiered rate estimate when amount is missing


class ParsedInvoice(BaseModel):
    vendor: str | None = Field(default=None)
    invoice_number: str | None = Field(default=None)
    invoice_date: str | None = Field(default=None)
    due_date: str | None = Field(default=None)
    po_number: str | None = Field(default=None)
    customer_name: str | None = Field(default=None)
    job_site: str | None = Field(default=None)
    rental_start: str | None = Field(default=None)
    rental_end: str | None = Field(default=None)
    rental_subtotal: float = Field(default=0.0)
    freight: float = Field(default=0.0)
    meter_charges: float = Field(default=0.0)
    fees: dict[str, float] = Field(default_factory=dict)
    fees_total: float = Field(default=0.0)
    tax: float = Field(default=0.0)
    total: float = Field(default=0.0)
    equipment: list[EquipmentItem] = Field(default_factory=list)
    fee_percentage: float = Field(default=0.0)
    high_fees: bool = Field(default=False)
    confidence: str = Field(default="low")


class EquipmentRate(EquipmentItem):
    equipment_class: str | None = Field(default=None)
    equipment_size: str | None = Field(default=None)
    classification_confidence: float | None = Field(default=None)
    market_rate_low: float | None = Field(default=None)
    market_rate_high: float | None = Field(default=None)
    market_rate_avg: float | None = Field(default=None)
    overpaid_per_day: float | None = Field(default=None)
    total_overpaid: float | None = Field(default=None)
    data_source: str | None = Field(default=None)


class MarketComparison(BaseModel):
    market_savings: float = Field(default=0.0)
    equipment_with_rates: list[EquipmentRate] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)  # descriptions (or reasons) for items left out
