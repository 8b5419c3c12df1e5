from __future__ import annotations

from collections.abc import Sequence

from freight_quote.models import ChargeableQuantity, Mode, OverallCargo, Piece
from freight_quote.modes import ModeSchema


def lcl_weight_or_measure(*, weight_kg: float, volume_cbm: float) -> float:
    return max(weight_kg / 1000, volume_cbm)


def _air(pieces: Sequence[Piece] | None, overall: OverallCargo, factor: float) -> ChargeableQuantity:
    if pieces:
        total_weight = sum(p.total_weight for p in pieces)
        total_volume = sum(p.total_volume for p in pieces)
        total_volumetric = sum(p.volumetric_weight(factor) * p.quantity for p in pieces)
    else:
        total_weight = overall.weight
        total_volume = overall.volume
        total_volumetric = overall.volume * factor

    quantity = max(total_weight, total_volumetric)
    return ChargeableQuantity(
        quantity=quantity,
        unit="kg",
        basis="weight" if total_weight >= total_volumetric else "volume",
        total_weight=total_weight,
        total_volume=total_volume,
        total_volumetric_weight=total_volumetric,
    )


def _lcl(pieces: Sequence[Piece] | None, overall: OverallCargo) -> ChargeableQuantity:
    if pieces:
        # W/M is taken per unit and then summed, not on the shipment totals
        quantity = sum(p.wm * p.quantity for p in pieces)
        total_weight = sum(p.total_weight for p in pieces)
        total_volume = sum(p.total_volume for p in pieces)
    else:
        total_weight = overall.weight
        total_volume = overall.volume
        quantity = lcl_weight_or_measure(weight_kg=total_weight, volume_cbm=total_volume)

    return ChargeableQuantity(
        quantity=quantity,
        unit="W/M",
        basis="weight" if total_weight / 1000 >= total_volume else "volume",
        total_weight=total_weight,
        total_volume=total_volume,
        total_volumetric_weight=total_volume,
    )


def chargeable_quantity(
    schema: ModeSchema,
    *,
    pieces: Sequence[Piece] | None = None,
    overall: OverallCargo | None = None,
    container_count: int | None = None,
    volume_factor: float = 167.0,
) -> ChargeableQuantity:
    """
    Compute the billing quantity for a shipment.

    Air bills the greater of actual and volumetric weight (kg), LCL bills
    weight-or-measure (W/M) and FCL bills per container. Per-piece input wins
    over `overall` when both are given.

    Raises:
        ValueError: when the mode needs cargo and none was supplied, or when
            the container count is negative.
    """
    if schema.mode is Mode.FCL:
        count = 1 if container_count is None else int(container_count)
        if count < 0:
            raise ValueError("container_count must be >= 0")
        return ChargeableQuantity(quantity=float(count), unit=schema.unit, basis="container")

    if not pieces and overall is None:
        raise ValueError(f"{schema.mode.value} quotes require pieces or overall cargo.")

    if schema.mode is Mode.AIR:
        return _air(pieces, overall, volume_factor)
    return _lcl(pieces, overall)
