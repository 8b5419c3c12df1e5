"""
Charge breakdown builder.

Lines are always produced in the same order (handling, incoterm pickup,
document fee, local transfer, freight, insurance) and every variable line is
driven by the one chargeable quantity passed in.
"""
from __future__ import annotations

import logging

from freight_quote.config import AppConfig, ChargesConfig, InsuranceConfig
from freight_quote.models import (
    BandSelection,
    ChargeableQuantity,
    ChargeBreakdown,
    ChargeLine,
    QuoteOptions,
    RouteRate,
)
from freight_quote.modes import AIRPORT_TRANSFER, EXW_CHARGES, HANDLING, INSURANCE, ServiceCode, schema_for
from freight_quote.rate_sheets import extract_price

logger = logging.getLogger(__name__)


def parse_declared_value(raw: str | float | int | None) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, str) and not raw.strip():
        return None
    value = extract_price(raw)
    return value if value > 0 else None


def freight_rate(price: float, markup: float) -> float:
    return price * (1 + markup)


def exw_step_rate(quantity: float, steps: tuple[tuple[float, float], ...]) -> float:
    for threshold, rate in steps:
        if quantity >= threshold:
            return rate
    return steps[-1][1] if steps else 0.0


def exw_charge(quantity: float, charges: ChargesConfig) -> float:
    return max(quantity * exw_step_rate(quantity, charges.exw_steps), charges.exw_min)


def transfer_charge(quantity: float, charges: ChargesConfig) -> float:
    return max(quantity * charges.transfer_rate, charges.transfer_min)


def insurance_charge(*, declared_value: float | None, pre_insurance_total: float, insurance: InsuranceConfig) -> float:
    if not declared_value or declared_value <= 0:
        return 0.0
    computed = (declared_value + pre_insurance_total) * insurance.buffer_factor * insurance.rate
    return max(computed, insurance.minimum)


def _flat(service: ServiceCode, amount: float) -> ChargeLine:
    return ChargeLine(
        code=service.code,
        description=service.description,
        quantity=1,
        unit=service.unit,
        rate=amount,
        amount=amount,
        service_id=service.service_id,
    )


def build_charges(
    route: RouteRate,
    chargeable: ChargeableQuantity,
    selection: BandSelection,
    options: QuoteOptions,
    config: AppConfig,
) -> ChargeBreakdown:
    """
    Build the ordered charge lines and total for one quote.

    Args:
        route: Selected rate sheet row (provides mode and currency).
        chargeable: Output of `chargeable_quantity`; used by every variable line.
        selection: Band chosen by `select_band`.
        options: Incoterm and insurance choices.
        config: Fee constants, markup and insurance parameters.

    Returns:
        ChargeBreakdown in the route currency. No tax is applied.
    """
    schema = schema_for(route.mode)
    fees = config.charges
    qty = chargeable.quantity
    lines: list[ChargeLine] = [_flat(HANDLING, fees.handling)]

    if options.incoterm is not None and options.incoterm.requires_pickup:
        if schema.exw_policy == "stepped":
            lines.append(_flat(EXW_CHARGES, exw_charge(qty, fees)))
        else:
            lines.append(_flat(EXW_CHARGES, fees.exw_flat_ocean))

    lines.append(_flat(schema.document, getattr(fees, schema.document_fee_field)))

    if schema.has_transfer:
        lines.append(_flat(AIRPORT_TRANSFER, transfer_charge(qty, fees)))

    rate = freight_rate(selection.price, config.pricing.markup)
    lines.append(
        ChargeLine(
            code=schema.freight.code,
            description=f"{schema.freight.description} ({selection.band})",
            quantity=qty,
            unit=schema.freight.unit,
            rate=rate,
            amount=qty * rate,
            service_id=schema.freight.service_id,
            expense_rate=selection.price,
            expense_amount=qty * selection.price,
        )
    )

    if options.insurance_enabled:
        amount = insurance_charge(
            declared_value=parse_declared_value(options.declared_value),
            pre_insurance_total=sum(line.amount for line in lines),
            insurance=config.insurance,
        )
        lines.append(_flat(INSURANCE, amount))

    breakdown = ChargeBreakdown(currency=route.currency, lines=tuple(lines), chargeable=chargeable, band=selection)
    logger.debug("Built %d charge lines for %s, total %.2f %s", len(lines), route.id, breakdown.total, route.currency.value)
    return breakdown
