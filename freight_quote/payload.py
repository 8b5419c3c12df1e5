"""
TMS create-quote payload.

A pure structural transform of a computed breakdown into the JSON body the
TMS expects: commodity blocks with per-unit and total weight/volume, and a
charges array with parallel income/expense objects.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from freight_quote.config import AppConfig
from freight_quote.models import (
    ChargeBreakdown,
    ChargeLine,
    ContainerType,
    Mode,
    OverallCargo,
    Piece,
    QuoteOptions,
    RouteRate,
    UserIdentity,
)
from freight_quote.modes import CONTAINER_PACKAGE_TYPES, INSURANCE, schema_for
from freight_quote.route_index import transit_days


def _iso(ts: datetime) -> str:
    # naive datetimes are taken as UTC
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _piece_commodity(piece: Piece, *, mode: Mode, volume_factor: float) -> dict[str, Any]:
    out: dict[str, Any] = {
        "commodityType": "Standard",
        "packageType": {"id": piece.package_type_id},
        "pieces": piece.quantity,
        "description": piece.description,
        "weightPerUnitValue": piece.weight,
        "weightPerUnitUOM": "kg",
        "totalWeightValue": piece.total_weight,
        "totalWeightUOM": "kg",
        "lengthValue": piece.length,
        "lengthUOM": "cm",
        "widthValue": piece.width,
        "widthUOM": "cm",
        "heightValue": piece.height,
        "heightUOM": "cm",
        "volumeValue": piece.volume,
        "volumeUOM": "m3",
        "totalVolumeValue": piece.total_volume,
        "totalVolumeUOM": "m3",
    }
    if mode is Mode.AIR:
        out.update(
            {
                "volumeWeightValue": piece.volumetric_weight(volume_factor),
                "volumeWeightUOM": "kg",
                "totalVolumeWeightValue": piece.volumetric_weight(volume_factor) * piece.quantity,
                "totalVolumeWeightUOM": "kg",
            }
        )
    return out


def _overall_commodity(cargo: OverallCargo, *, mode: Mode, volume_factor: float) -> dict[str, Any]:
    pieces = max(int(cargo.pieces or 1), 1)
    out: dict[str, Any] = {
        "commodityType": "Standard",
        "packageType": {"id": cargo.package_type_id},
        "pieces": pieces,
        "description": cargo.description,
        "weightPerUnitValue": cargo.weight / pieces,
        "weightPerUnitUOM": "kg",
        "totalWeightValue": cargo.weight,
        "totalWeightUOM": "kg",
        "volumeValue": cargo.volume / pieces,
        "volumeUOM": "m3",
        "totalVolumeValue": cargo.volume,
        "totalVolumeUOM": "m3",
    }
    if mode is Mode.AIR:
        out.update(
            {
                "volumeWeightValue": cargo.volume * volume_factor / pieces,
                "volumeWeightUOM": "kg",
                "totalVolumeWeightValue": cargo.volume * volume_factor,
                "totalVolumeWeightUOM": "kg",
            }
        )
    return out


def _container_commodities(options: QuoteOptions, description: str) -> list[dict[str, Any]]:
    container = ContainerType(options.container_type) if options.container_type else ContainerType.HQ40
    package_id, package_name = CONTAINER_PACKAGE_TYPES[container]
    return [
        {
            "commodityType": "Container",
            "packageType": {"id": package_id},
            "pieces": 1,
            "description": description or package_name,
        }
        for _ in range(max(int(options.container_count), 0))
    ]


def build_commodities(
    mode: Mode,
    *,
    pieces: Sequence[Piece] | None = None,
    overall: OverallCargo | None = None,
    options: QuoteOptions | None = None,
    volume_factor: float = 167.0,
) -> list[dict[str, Any]]:
    if mode is Mode.FCL:
        return _container_commodities(options or QuoteOptions(), overall.description if overall else "")
    if pieces:
        return [_piece_commodity(p, mode=mode, volume_factor=volume_factor) for p in pieces]
    if overall is not None:
        return [_overall_commodity(overall, mode=mode, volume_factor=volume_factor)]
    return []


def _charge(
    line: ChargeLine,
    *,
    currency: str,
    bill_to: str,
    reference: str,
    freight_code: str,
    markup: float,
) -> dict[str, Any]:
    service: dict[str, Any] = {"code": line.code}
    if line.service_id is not None:
        service = {"id": line.service_id, "code": line.code}

    income = {
        "quantity": line.quantity,
        "unit": line.unit,
        "rate": line.rate,
        "payment": "Prepaid",
        "billApplyTo": "Other",
        "billTo": {"name": bill_to},
        "currency": {"abbr": currency},
        "reference": f"{reference}-{line.code}",
        "showOnDocument": True,
        "notes": f"{line.description} charge",
    }

    if line.code != freight_code or line.expense_rate is None:
        return {"service": service, "income": income, "expense": {"currency": {"abbr": currency}}}

    income["notes"] = f"{line.description} - rate {currency} {line.expense_rate:.2f}/{line.unit} + {markup * 100:g}%"
    expense = {
        **income,
        "rate": line.expense_rate,
        "notes": f"{line.description} expense - rate {currency} {line.expense_rate:.2f}/{line.unit}",
    }
    return {"service": service, "income": income, "expense": expense}


def build_quote_payload(
    *,
    route: RouteRate,
    breakdown: ChargeBreakdown,
    options: QuoteOptions,
    user: UserIdentity,
    config: AppConfig,
    pieces: Sequence[Piece] | None = None,
    overall: OverallCargo | None = None,
    customer_reference: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Shape a computed quote into the TMS create-quote request body.

    Contact, consignee and bill-to default to the requesting user. Dates are
    the request time and request time plus the configured validity window.
    Insurance lines with a zero amount are left out.
    """
    schema = schema_for(route.mode)
    tms = config.tms
    now = now or datetime.now(timezone.utc)
    reference = customer_reference or f"QUOTE-{route.id}"
    currency = breakdown.currency.value

    charges = [
        _charge(
            line,
            currency=currency,
            bill_to=user.name,
            reference=reference,
            freight_code=schema.freight.code,
            markup=config.pricing.markup,
        )
        for line in breakdown.lines
        if not (line.code == INSURANCE.code and line.amount <= 0)
    ]

    return {
        "date": _iso(now),
        "validUntil": _iso(now + timedelta(days=config.pricing.quote_validity_days)),
        "transitDays": transit_days(route.transit_time) or tms.default_transit_days,
        "customerReference": reference,
        "contact": {"name": user.name},
        "origin": {"name": route.origin},
        "destination": {"name": route.destination},
        "modeOfTransportation": {"id": schema.transport_mode_id},
        "rateCategoryId": tms.rate_category_id,
        "portOfReceipt": {"name": route.origin},
        "shipper": {"name": tms.shipper_name},
        "consignee": {"name": user.name},
        "issuingCompany": {"name": tms.issuing_company},
        "salesRep": {"name": tms.sales_rep},
        "commodities": build_commodities(
            route.mode,
            pieces=pieces,
            overall=overall,
            options=options,
            volume_factor=config.pricing.air_volume_factor,
        ),
        "charges": charges,
    }
