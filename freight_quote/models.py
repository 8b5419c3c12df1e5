"""
Data models for the quote engine.

These dataclasses define the structure of data flowing through each step:
rate sheet rows, cargo pieces, chargeable quantities, band selections and
charge lines. Everything here is a plain value so the API, the TMS payload
builder and any document renderer can consume it without extra adapters.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Literal


class Mode(str, Enum):
    AIR = "air"
    FCL = "fcl"
    LCL = "lcl"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    CHF = "CHF"
    CLP = "CLP"
    SEK = "SEK"


class Incoterm(str, Enum):
    EXW = "EXW"
    FCA = "FCA"
    FAS = "FAS"
    FOB = "FOB"
    CPT = "CPT"
    CFR = "CFR"
    CIF = "CIF"
    CIP = "CIP"
    DAP = "DAP"
    DPU = "DPU"
    DDP = "DDP"

    @property
    def requires_pickup(self) -> bool:
        return self is Incoterm.EXW


class AirBand(str, Enum):
    KG45 = "45kg"
    KG100 = "100kg"
    KG300 = "300kg"
    KG500 = "500kg"
    KG1000 = "1000kg"


class ContainerType(str, Enum):
    GP20 = "20GP"
    HQ40 = "40HQ"
    NOR40 = "40NOR"


class LclBand(str, Enum):
    WM = "W/M"


ChargeableUnit = Literal["kg", "W/M", "container"]
ChargeableBasis = Literal["weight", "volume", "container"]


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass(frozen=True)
class RouteRate:
    """
    One accepted rate sheet row.

    `bands` keeps the raw published price text per band label, in ascending
    band order. `price_for_comparison` is only used for ranking candidates.
    """
    id: str
    mode: Mode
    origin: str
    origin_key: str
    destination: str
    destination_key: str
    currency: Currency
    bands: dict[str, str | None]
    carrier: str | None = None
    carrier_key: str | None = None
    transit_time: str | None = None
    frequency: str | None = None
    routing: str | None = None
    company: str | None = None
    remarks: tuple[str, ...] = ()
    valid_until: str | None = None
    row_number: int = 0
    price_for_comparison: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["mode"] = self.mode.value
        out["currency"] = self.currency.value
        out["remarks"] = list(self.remarks)
        return out


@dataclass(frozen=True)
class Piece:
    """A physical item (repeated `quantity` times) entered by the user."""
    length: float
    width: float
    height: float
    weight: float
    quantity: int = 1
    no_apilable: bool = False  # non-stackable, informational only
    package_type_id: int | None = None
    description: str = ""

    @property
    def volume(self) -> float:
        if self.length <= 0 or self.width <= 0 or self.height <= 0:
            return 0.0
        return (self.length * self.width * self.height) / 1_000_000

    def volumetric_weight(self, factor: float) -> float:
        return self.volume * factor

    @property
    def total_weight(self) -> float:
        return self.weight * self.quantity

    @property
    def total_volume(self) -> float:
        return self.volume * self.quantity

    @property
    def weight_tons(self) -> float:
        return self.weight / 1000

    @property
    def wm(self) -> float:
        return max(self.weight_tons, self.volume)


@dataclass(frozen=True)
class OverallCargo:
    """Aggregate weight and volume for the whole shipment ("overall" mode)."""
    weight: float
    volume: float
    pieces: int = 1
    package_type_id: int | None = None
    description: str = ""


@dataclass(frozen=True)
class ChargeableQuantity:
    quantity: float
    unit: ChargeableUnit
    basis: ChargeableBasis
    total_weight: float = 0.0
    total_volume: float = 0.0
    total_volumetric_weight: float = 0.0


@dataclass(frozen=True)
class BandSelection:
    band: str
    threshold: float
    price: float


@dataclass(frozen=True)
class BandAvailability:
    band: str
    threshold: float
    available: bool


@dataclass(frozen=True)
class WeightRangeValidation:
    has_price: bool
    current_band: str | None
    next_priced_band: str | None = None
    min_quantity_required: float | None = None
    bands: tuple[BandAvailability, ...] = ()


@dataclass(frozen=True)
class ChargeLine:
    code: str
    description: str
    quantity: float
    unit: str
    rate: float
    amount: float
    service_id: int | None = None
    expense_rate: float | None = None
    expense_amount: float | None = None


@dataclass(frozen=True)
class ChargeBreakdown:
    currency: Currency
    lines: tuple[ChargeLine, ...]
    chargeable: ChargeableQuantity
    band: BandSelection

    @property
    def total_without_tax(self) -> float:
        return sum(line.amount for line in self.lines)

    @property
    def total(self) -> float:
        return self.total_without_tax

    def line(self, code: str) -> ChargeLine | None:
        for item in self.lines:
            if item.code == code:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency.value,
            "lines": [asdict(item) for item in self.lines],
            "total": self.total,
            "chargeable": asdict(self.chargeable),
            "band": asdict(self.band),
        }


@dataclass(frozen=True)
class QuoteOptions:
    incoterm: Incoterm | None = None
    insurance_enabled: bool = False
    declared_value: str | float | None = None
    pickup_address: str | None = None
    delivery_address: str | None = None
    container_type: ContainerType | None = None
    container_count: int = 1


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    blocking: bool = True
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserIdentity:
    name: str
    email: str | None = None
