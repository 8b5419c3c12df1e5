"""
Tariff band selection.

Tiered schemas (air, LCL) pick the highest band whose threshold does not
exceed the chargeable quantity and that carries a published price. Fixed
schemas (FCL) are addressed by name. A price of exactly 0 never selects.
"""
from __future__ import annotations

from freight_quote.models import BandAvailability, BandSelection, RouteRate, WeightRangeValidation
from freight_quote.modes import BandDef, schema_for
from freight_quote.rate_sheets import extract_price


def band_price(route: RouteRate, label: str) -> float:
    return extract_price(route.bands.get(label))


def _ordered_bands(route: RouteRate) -> list[BandDef]:
    return sorted(schema_for(route.mode).bands, key=lambda b: b.threshold)


def is_price_zero(route: RouteRate) -> bool:
    """True when no band on the route has a usable price (manual quote only)."""
    return all(band_price(route, b.label) <= 0 for b in schema_for(route.mode).bands)


def _selection(route: RouteRate, band: BandDef) -> BandSelection:
    return BandSelection(band=band.label, threshold=band.threshold, price=band_price(route, band.label))


def select_band(route: RouteRate, quantity: float, *, band: str | None = None) -> BandSelection | None:
    """
    Pick the tariff band for `quantity` on `route`.

    Args:
        route: The selected rate sheet row.
        quantity: Chargeable quantity in the mode's unit.
        band: Band label for fixed schemas (the FCL container type). Ignored
            for tiered schemas.

    Returns:
        The selected band with its pre-markup price, or None when nothing
        priced applies.
    """
    schema = schema_for(route.mode)
    if is_price_zero(route):
        return None

    if schema.band_policy == "fixed":
        if band is None:
            return None
        definition = schema.band(str(getattr(band, "value", band)))
        if definition is None or band_price(route, definition.label) <= 0:
            return None
        return _selection(route, definition)

    bands = _ordered_bands(route)
    chosen: BandDef | None = None
    for b in bands:
        if quantity >= b.threshold and band_price(route, b.label) > 0:
            chosen = b

    if chosen is None and bands and quantity < bands[0].threshold and band_price(route, bands[0].label) > 0:
        chosen = bands[0]

    if chosen is None:
        return None
    return _selection(route, chosen)


def validate_weight_range(route: RouteRate, quantity: float, *, band: str | None = None) -> WeightRangeValidation:
    """Explain band availability around `quantity`, including the next priced band when none applies."""
    schema = schema_for(route.mode)
    bands = _ordered_bands(route)
    availability = tuple(
        BandAvailability(band=b.label, threshold=b.threshold, available=band_price(route, b.label) > 0) for b in bands
    )

    selection = select_band(route, quantity, band=band)

    if schema.band_policy == "fixed":
        current = str(getattr(band, "value", band)) if band is not None else None
    else:
        current = None
        for b in bands:
            if quantity >= b.threshold:
                current = b.label
        if current is None and bands:
            current = bands[0].label

    if selection is not None:
        return WeightRangeValidation(has_price=True, current_band=selection.band, bands=availability)

    next_band: BandDef | None = None
    if schema.band_policy == "tiered":
        for b in bands:
            if b.threshold > quantity and band_price(route, b.label) > 0:
                next_band = b
                break

    return WeightRangeValidation(
        has_price=False,
        current_band=current,
        next_priced_band=next_band.label if next_band else None,
        min_quantity_required=next_band.threshold if next_band else None,
        bands=availability,
    )
