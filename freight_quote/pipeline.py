from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
import logging
from typing import Any

from freight_quote.chargeable import chargeable_quantity
from freight_quote.charges import build_charges
from freight_quote.config import AppConfig
from freight_quote.models import (
    BandSelection,
    ChargeableQuantity,
    ChargeBreakdown,
    Mode,
    OverallCargo,
    Piece,
    QuoteOptions,
    RouteRate,
    UserIdentity,
    ValidationIssue,
    WeightRangeValidation,
)
from freight_quote.modes import schema_for
from freight_quote.payload import build_quote_payload
from freight_quote.tariff import select_band, validate_weight_range
from freight_quote.trace import RunTrace
from freight_quote.validation import check_cargo, check_options, check_tariff

logger = logging.getLogger(__name__)


@dataclass
class QuoteResult:
    route: RouteRate
    trace: RunTrace
    chargeable: ChargeableQuantity | None = None
    band: BandSelection | None = None
    weight_range: WeightRangeValidation | None = None
    breakdown: ChargeBreakdown | None = None
    issues: list[ValidationIssue] = field(default_factory=list)
    payload: dict[str, Any] | None = None

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.blocking]

    @property
    def can_submit(self) -> bool:
        return self.breakdown is not None and not self.blocking_issues

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route.to_dict(),
            "chargeable": asdict(self.chargeable) if self.chargeable else None,
            "band": asdict(self.band) if self.band else None,
            "weight_range": asdict(self.weight_range) if self.weight_range else None,
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
            "issues": [asdict(i) for i in self.issues],
            "can_submit": self.can_submit,
            "payload": self.payload,
            "trace": self.trace.to_dict(),
        }


def run_quote(
    *,
    route: RouteRate,
    config: AppConfig,
    options: QuoteOptions | None = None,
    pieces: Sequence[Piece] | None = None,
    overall: OverallCargo | None = None,
    user: UserIdentity | None = None,
    include_payload: bool = False,
    customer_reference: str | None = None,
    now: datetime | None = None,
) -> QuoteResult:
    """
    Quote one selected route: chargeable quantity, band, charges, validation.

    The payload is only built when requested, a breakdown exists and a user
    is known. Validation problems are returned as issues, never raised.
    """
    options = options or QuoteOptions()
    schema = schema_for(route.mode)
    trace = RunTrace()
    result = QuoteResult(route=route, trace=trace)

    trace.add(
        "Route",
        summary=f"{route.origin} -> {route.destination} ({route.carrier or 'any carrier'}, {route.currency.value})",
        data=route.to_dict(),
    )

    result.issues.extend(check_options(route.mode, options))

    if route.mode is not Mode.FCL and not pieces and overall is None:
        result.issues.extend(check_cargo(route.mode, pieces=None, overall=None, chargeable=None, limits=config.limits))
        trace.add("Chargeable Quantity", summary="No cargo supplied.", blocking=True)
        return result

    chargeable = chargeable_quantity(
        schema,
        pieces=pieces,
        overall=overall,
        container_count=max(options.container_count, 0),
        volume_factor=config.pricing.air_volume_factor,
    )
    result.chargeable = chargeable
    trace.add(
        "Chargeable Quantity",
        summary=f"{chargeable.quantity:g} {chargeable.unit} by {chargeable.basis}",
        data=chargeable,
    )
    result.issues.extend(
        check_cargo(route.mode, pieces=pieces, overall=overall, chargeable=chargeable, limits=config.limits)
    )

    container = options.container_type.value if options.container_type else None
    selection = select_band(route, chargeable.quantity, band=container)
    weight_range = validate_weight_range(route, chargeable.quantity, band=container)
    result.band = selection
    result.weight_range = weight_range
    tariff_issues = check_tariff(route, selection, weight_range)
    result.issues.extend(tariff_issues)
    trace.add(
        "Band Selection",
        summary=f"{selection.band} at {selection.price:g}" if selection else "No priced band",
        data={"selection": selection, "weight_range": weight_range},
        blocking=bool(tariff_issues),
    )

    if selection is None:
        return result

    breakdown = build_charges(route, chargeable, selection, options, config)
    result.breakdown = breakdown
    trace.add(
        "Charges",
        summary=f"Total {breakdown.total:.2f} {breakdown.currency.value} ({len(breakdown.lines)} lines)",
        data=breakdown.to_dict(),
    )

    blocking = result.blocking_issues
    if blocking:
        logger.info("Quote for %s has %d blocking issue(s): %s", route.id, len(blocking), [i.code for i in blocking])
    trace.add(
        "Validation",
        summary=f"{len(result.issues)} issue(s), {len(blocking)} blocking",
        data=result.issues,
        blocking=bool(blocking),
    )

    if include_payload and user is not None:
        result.payload = build_quote_payload(
            route=route,
            breakdown=breakdown,
            options=options,
            user=user,
            config=config,
            pieces=pieces,
            overall=overall,
            customer_reference=customer_reference,
            now=now,
        )
        trace.add("Payload", summary=f"{len(result.payload['charges'])} charge(s) for TMS")

    return result
