from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import re

from freight_quote.models import Currency, RouteRate, SelectOption
from freight_quote.rate_sheets import capitalize_label, normalize_key

_FIRST_INT_RE = re.compile(r"\d+")


def transit_days(raw: str | None) -> int | None:
    """First integer found in a free-text transit time ("25-30 days" -> 25)."""
    if not raw:
        return None
    m = _FIRST_INT_RE.search(str(raw))
    return int(m.group(0)) if m else None


def best_price_index(candidates: Sequence[RouteRate]) -> int | None:
    best: int | None = None
    for i, route in enumerate(candidates):
        if route.price_for_comparison <= 0:
            continue
        if best is None or route.price_for_comparison < candidates[best].price_for_comparison:
            best = i
    return best


def fastest_index(candidates: Sequence[RouteRate]) -> int | None:
    fastest: int | None = None
    fastest_days: int | None = None
    for i, route in enumerate(candidates):
        days = transit_days(route.transit_time)
        if days is None:
            continue
        if fastest_days is None or days < fastest_days:
            fastest, fastest_days = i, days
    return fastest


def _options(pairs: Iterable[tuple[str, str]]) -> list[SelectOption]:
    seen: dict[str, str] = {}
    for key, label in pairs:
        if key and key not in seen:
            seen[key] = label
    return [SelectOption(value=k, label=capitalize_label(v)) for k, v in sorted(seen.items())]


class RouteIndex:
    """Lookup helpers over one loaded rate sheet. Matching is exact on normalized keys."""

    def __init__(self, routes: Sequence[RouteRate]):
        self.routes = list(routes)

    def __len__(self) -> int:
        return len(self.routes)

    def _pair(self, origin_key: str, destination_key: str) -> list[RouteRate]:
        o = normalize_key(origin_key)
        d = normalize_key(destination_key)
        return [r for r in self.routes if r.origin_key == o and r.destination_key == d]

    def origins(self) -> list[SelectOption]:
        return _options((r.origin_key, r.origin) for r in self.routes)

    def destinations(self, origin_key: str) -> list[SelectOption]:
        o = normalize_key(origin_key)
        return _options((r.destination_key, r.destination) for r in self.routes if r.origin_key == o)

    def carriers(self, origin_key: str, destination_key: str) -> list[str]:
        return sorted({r.carrier for r in self._pair(origin_key, destination_key) if r.carrier})

    def currencies(self, origin_key: str, destination_key: str) -> list[Currency]:
        found = {r.currency for r in self._pair(origin_key, destination_key)}
        return sorted(found, key=lambda c: c.value)

    def candidates(
        self,
        origin_key: str,
        destination_key: str,
        *,
        carriers: Iterable[str] | None = None,
        currencies: Iterable[Currency | str] | None = None,
    ) -> list[RouteRate]:
        """
        Routes for the pair, filtered by the active carrier and currency sets.

        A `None` filter means every value is active. Routes without a carrier
        pass any carrier filter. The result is sorted ascending by comparison
        price (stable, so sheet order breaks ties).
        """
        carrier_keys = {normalize_key(c) for c in carriers} if carriers is not None else None
        currency_set = {Currency(str(getattr(c, "value", c)).upper()) for c in currencies} if currencies is not None else None

        out: list[RouteRate] = []
        for r in self._pair(origin_key, destination_key):
            if carrier_keys is not None and r.carrier_key and r.carrier_key not in carrier_keys:
                continue
            if currency_set is not None and r.currency not in currency_set:
                continue
            out.append(r)
        return sorted(out, key=lambda r: r.price_for_comparison)

    def get(self, route_id: str) -> RouteRate | None:
        for r in self.routes:
            if r.id == route_id:
                return r
        return None


@dataclass
class RouteSelection:
    """
    Mutable selection state for one quoting session.

    Choosing an origin clears the destination and resets both filters;
    choosing a destination activates every carrier and currency of the pair.
    """
    index: RouteIndex
    origin_key: str | None = None
    destination_key: str | None = None
    active_carriers: set[str] = field(default_factory=set)
    active_currencies: set[Currency] = field(default_factory=set)

    def select_origin(self, origin_key: str) -> list[SelectOption]:
        self.origin_key = normalize_key(origin_key)
        self.destination_key = None
        self.active_carriers = set()
        self.active_currencies = set()
        return self.index.destinations(self.origin_key)

    def select_destination(self, destination_key: str) -> list[RouteRate]:
        if self.origin_key is None:
            raise ValueError("Select an origin before choosing a destination.")
        self.destination_key = normalize_key(destination_key)
        self.active_carriers = {normalize_key(c) for c in self.index.carriers(self.origin_key, self.destination_key)}
        self.active_currencies = set(self.index.currencies(self.origin_key, self.destination_key))
        return self.candidates()

    def toggle_carrier(self, carrier: str) -> None:
        key = normalize_key(carrier)
        if key in self.active_carriers:
            self.active_carriers.discard(key)
        else:
            self.active_carriers.add(key)

    def toggle_currency(self, currency: Currency | str) -> None:
        cur = Currency(str(getattr(currency, "value", currency)).upper())
        if cur in self.active_currencies:
            self.active_currencies.discard(cur)
        else:
            self.active_currencies.add(cur)

    def candidates(self) -> list[RouteRate]:
        if self.origin_key is None or self.destination_key is None:
            return []
        return self.index.candidates(
            self.origin_key,
            self.destination_key,
            carriers=self.active_carriers,
            currencies=self.active_currencies,
        )
