from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict

from freight_quote.charges import parse_declared_value
from freight_quote.config import LimitsConfig
from freight_quote.models import (
    BandSelection,
    ChargeableQuantity,
    Mode,
    OverallCargo,
    Piece,
    QuoteOptions,
    RouteRate,
    ValidationIssue,
    WeightRangeValidation,
)
from freight_quote.tariff import is_price_zero


def _blank(value: str | None) -> bool:
    return not value or not str(value).strip()


def check_options(mode: Mode, options: QuoteOptions) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if options.incoterm is None:
        issues.append(ValidationIssue("missing_incoterm", "Select an incoterm."))
    elif options.incoterm.requires_pickup:
        if _blank(options.pickup_address):
            issues.append(ValidationIssue("missing_pickup_address", "EXW quotes need a pickup address."))
        if _blank(options.delivery_address):
            issues.append(ValidationIssue("missing_delivery_address", "EXW quotes need a delivery address."))

    if options.insurance_enabled and parse_declared_value(options.declared_value) is None:
        issues.append(
            ValidationIssue(
                "missing_declared_value",
                "Insurance is enabled but no cargo value was declared.",
            )
        )

    if mode is Mode.FCL:
        if options.container_type is None:
            issues.append(ValidationIssue("missing_container_type", "Select a container type."))
        if options.container_count < 1:
            issues.append(
                ValidationIssue(
                    "invalid_container_count",
                    "At least one container is required.",
                    data={"container_count": options.container_count},
                )
            )
    return issues


def check_cargo(
    mode: Mode,
    *,
    pieces: Sequence[Piece] | None,
    overall: OverallCargo | None,
    chargeable: ChargeableQuantity | None,
    limits: LimitsConfig,
) -> list[ValidationIssue]:
    """
    Cargo checks. Air pieces are held to the aircraft door ceilings; pieces
    with a non-positive dimension only get a non-blocking note because they
    simply contribute no volume.
    """
    issues: list[ValidationIssue] = []
    if mode is Mode.FCL:
        return issues

    if not pieces and overall is None:
        issues.append(ValidationIssue("missing_cargo", "Enter pieces or overall weight and volume."))
        return issues

    if not pieces and overall is not None:
        if overall.weight <= 0:
            issues.append(ValidationIssue("invalid_weight", "Total weight must be above 0.", data={"weight": overall.weight}))
        if overall.volume <= 0:
            issues.append(
                ValidationIssue(
                    "zero_volume_piece",
                    "No volume was entered; the shipment counts as zero volume.",
                    blocking=False,
                    data={"volume": overall.volume},
                )
            )

    for i, p in enumerate(pieces or (), start=1):
        if p.length <= 0 or p.width <= 0 or p.height <= 0:
            issues.append(
                ValidationIssue(
                    "zero_volume_piece",
                    f"Piece {i} has a missing dimension and counts as zero volume.",
                    blocking=False,
                    data={"piece": i},
                )
            )
        if p.weight <= 0:
            issues.append(ValidationIssue("invalid_weight", f"Piece {i} needs a weight above 0.", data={"piece": i}))
        if mode is not Mode.AIR:
            continue
        over = {
            "length": (p.length, limits.air_max_length_cm),
            "width": (p.width, limits.air_max_width_cm),
            "height": (p.height, limits.air_max_height_cm),
        }
        for dim, (value, ceiling) in over.items():
            if value > ceiling:
                issues.append(
                    ValidationIssue(
                        "oversize_piece",
                        f"Piece {i} {dim} {value:g} cm exceeds {ceiling:g} cm; contact an executive.",
                        data={"piece": i, "dimension": dim, "value": value, "max": ceiling},
                    )
                )

    if mode is Mode.AIR and chargeable is not None and chargeable.total_weight > limits.air_max_total_weight_kg:
        issues.append(
            ValidationIssue(
                "overweight_shipment",
                f"Total weight {chargeable.total_weight:g} kg exceeds {limits.air_max_total_weight_kg:g} kg.",
                data={"total_weight": chargeable.total_weight, "max": limits.air_max_total_weight_kg},
            )
        )
    return issues


def check_tariff(
    route: RouteRate,
    selection: BandSelection | None,
    weight_range: WeightRangeValidation | None,
) -> list[ValidationIssue]:
    if is_price_zero(route):
        return [
            ValidationIssue(
                "manual_quote_required",
                "This route has no published price; request a manual quote.",
                data={"route_id": route.id},
            )
        ]
    if selection is not None:
        return []

    data = asdict(weight_range) if weight_range is not None else {}
    if weight_range is not None and weight_range.next_priced_band:
        message = (
            f"No price for the {weight_range.current_band} band; the next priced band is "
            f"{weight_range.next_priced_band} (minimum {weight_range.min_quantity_required:g})."
        )
    else:
        message = "No priced band applies to this quantity on the selected route."
    return [ValidationIssue("no_band", message, data=data)]

