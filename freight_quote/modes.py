"""
Mode schemas.

Air, FCL and LCL share one load -> index -> compute -> build pipeline. Each
ModeSchema carries everything that differs between them: the positional
column layout of the published sheet, the band definitions, the chargeable
unit and the charge-line template.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from freight_quote.models import AirBand, ContainerType, Currency, LclBand, Mode


@dataclass(frozen=True)
class BandDef:
    label: str
    threshold: float
    column: int


@dataclass(frozen=True)
class ColumnLayout:
    origin: int
    destination: int
    carrier: int | None = None
    currency: int | None = None
    transit_time: int | None = None
    frequency: int | None = None
    routing: int | None = None
    company: int | None = None
    remarks: tuple[int, ...] = ()
    valid_until: int | None = None


@dataclass(frozen=True)
class ServiceCode:
    code: str
    service_id: int | None
    description: str
    unit: str


@dataclass(frozen=True)
class ModeSchema:
    mode: Mode
    id_prefix: str
    columns: ColumnLayout
    bands: tuple[BandDef, ...]
    band_policy: Literal["tiered", "fixed"]
    currencies: frozenset[Currency]
    unit: Literal["kg", "W/M", "container"]
    document: ServiceCode
    document_fee_field: Literal["awb_fee", "bl_fee"]
    freight: ServiceCode
    exw_policy: Literal["stepped", "flat"]
    has_transfer: bool
    transport_mode_id: int
    # None: first band with a published value is used for ranking
    comparison_band: str | None = None

    def band(self, label: str) -> BandDef | None:
        for b in self.bands:
            if b.label == label:
                return b
        return None


HANDLING = ServiceCode(code="H", service_id=162, description="Handling", unit="HL")
EXW_CHARGES = ServiceCode(code="EC", service_id=271, description="EXW Charges", unit="EXW CHARGES")
AIRPORT_TRANSFER = ServiceCode(code="AT", service_id=None, description="Airport Transfer", unit="AIRPORT TRANSFER")
INSURANCE = ServiceCode(code="INS", service_id=None, description="Cargo Insurance", unit="INSURANCE")

ALL_CURRENCIES = frozenset(Currency)

AIR = ModeSchema(
    mode=Mode.AIR,
    id_prefix="AIR",
    columns=ColumnLayout(
        origin=1,
        destination=2,
        carrier=8,
        frequency=9,
        transit_time=10,
        routing=11,
        remarks=(12, 13),
        currency=14,
        valid_until=15,
    ),
    bands=(
        BandDef(AirBand.KG45.value, 45.0, 3),
        BandDef(AirBand.KG100.value, 100.0, 4),
        BandDef(AirBand.KG300.value, 300.0, 5),
        BandDef(AirBand.KG500.value, 500.0, 6),
        BandDef(AirBand.KG1000.value, 1000.0, 7),
    ),
    band_policy="tiered",
    currencies=ALL_CURRENCIES,
    unit="kg",
    document=ServiceCode(code="AWB", service_id=335, description="AWB", unit="AWB"),
    document_fee_field="awb_fee",
    freight=ServiceCode(code="AF", service_id=4, description="Air Freight", unit="AIR FREIGHT"),
    exw_policy="stepped",
    has_transfer=True,
    transport_mode_id=8,
)

FCL = ModeSchema(
    mode=Mode.FCL,
    id_prefix="FCL",
    columns=ColumnLayout(
        origin=1,
        destination=2,
        carrier=6,
        transit_time=7,
        remarks=(8,),
        company=10,
        currency=11,
        valid_until=12,
    ),
    bands=(
        BandDef(ContainerType.GP20.value, 0.0, 3),
        BandDef(ContainerType.HQ40.value, 0.0, 4),
        BandDef(ContainerType.NOR40.value, 0.0, 5),
    ),
    band_policy="fixed",
    currencies=ALL_CURRENCIES,
    unit="container",
    document=ServiceCode(code="B", service_id=168, description="BL", unit="BL"),
    document_fee_field="bl_fee",
    freight=ServiceCode(code="OF", service_id=None, description="Ocean Freight", unit="OCEAN FREIGHT"),
    exw_policy="flat",
    has_transfer=False,
    transport_mode_id=1,
    comparison_band=ContainerType.HQ40.value,
)

LCL = ModeSchema(
    mode=Mode.LCL,
    id_prefix="LCL",
    columns=ColumnLayout(
        origin=1,
        routing=2,
        destination=3,
        currency=5,
        frequency=6,
        transit_time=7,
        carrier=8,
        remarks=(9,),
        valid_until=10,
    ),
    bands=(BandDef(LclBand.WM.value, 0.0, 4),),
    band_policy="tiered",
    currencies=frozenset({Currency.USD, Currency.EUR}),
    unit="W/M",
    document=ServiceCode(code="B", service_id=168, description="BL", unit="BL"),
    document_fee_field="bl_fee",
    freight=ServiceCode(code="OF", service_id=None, description="Ocean Freight", unit="OCEAN FREIGHT (W/M)"),
    exw_policy="flat",
    has_transfer=False,
    transport_mode_id=1,
)

# FCL package type ids in the TMS catalogue
CONTAINER_PACKAGE_TYPES: dict[ContainerType, tuple[int, str]] = {
    ContainerType.GP20: (40, "20 FT. STANDARD CONTAINER"),
    ContainerType.HQ40: (27, "40 FT. HIGH CUBE"),
    ContainerType.NOR40: (25, "40 FT. REFRIGERATED (ALUMINIUM)"),
}

SCHEMAS: dict[Mode, ModeSchema] = {Mode.AIR: AIR, Mode.FCL: FCL, Mode.LCL: LCL}


def schema_for(mode: Mode | str) -> ModeSchema:
    return SCHEMAS[Mode(mode)]
