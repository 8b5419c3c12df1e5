from __future__ import annotations

import pytest

from freight_quote.models import Currency
from freight_quote.route_index import RouteIndex, RouteSelection, best_price_index, fastest_index, transit_days


@pytest.fixture
def index(air_routes):
    return RouteIndex(air_routes)


def test_origins_sorted_and_deduplicated(index):
    origins = index.origins()
    assert [o.value for o in origins] == ["frankfurt", "hong kong", "shanghai"]
    assert [o.label for o in origins] == ["Frankfurt", "Hong Kong", "Shanghai"]


def test_destinations_for_origin(index):
    assert [d.value for d in index.destinations("Shanghai ")] == ["lima", "santiago"]
    assert index.destinations("nowhere") == []


def test_carriers_and_currencies(index):
    assert index.carriers("shanghai", "santiago") == ["Air China", "KLM", "LATAM"]
    assert index.currencies("shanghai", "santiago") == [Currency.EUR, Currency.USD]


def test_candidates_sorted_by_comparison_price(index):
    candidates = index.candidates("shanghai", "santiago")
    assert [r.carrier for r in candidates] == ["KLM", "Air China", "LATAM"]
    assert best_price_index(candidates) == 1
    assert fastest_index(candidates) == 0


def test_candidate_filters(index):
    only_latam = index.candidates("shanghai", "santiago", carriers=["latam"])
    assert [r.carrier for r in only_latam] == ["LATAM"]

    only_eur = index.candidates("shanghai", "santiago", currencies=["EUR"])
    assert [r.carrier for r in only_eur] == ["KLM"]

    assert index.candidates("shanghai", "santiago", carriers=[], currencies=None) == []


def test_routes_without_carrier_pass_any_carrier_filter(index):
    lima = index.candidates("shanghai", "lima", carriers=["LATAM"])
    assert len(lima) == 1
    assert lima[0].carrier is None


def test_transit_days_parsing():
    assert transit_days("5-7 days") == 5
    assert transit_days("approx. 12d") == 12
    assert transit_days("weekly") is None
    assert transit_days(None) is None


def test_indices_on_empty_lists():
    assert best_price_index([]) is None
    assert fastest_index([]) is None


def test_selection_flow_and_origin_reset(index):
    selection = RouteSelection(index)

    destinations = selection.select_origin("Shanghai")
    assert [d.value for d in destinations] == ["lima", "santiago"]

    candidates = selection.select_destination("santiago")
    assert len(candidates) == 3
    assert selection.active_carriers == {"air china", "klm", "latam"}
    assert selection.active_currencies == {Currency.EUR, Currency.USD}

    selection.toggle_carrier("KLM")
    selection.toggle_currency("usd")
    assert selection.candidates() == []

    selection.toggle_currency(Currency.USD)
    assert [r.carrier for r in selection.candidates()] == ["Air China", "LATAM"]

    selection.select_origin("frankfurt")
    assert selection.destination_key is None
    assert selection.active_carriers == set()
    assert selection.active_currencies == set()
    assert selection.candidates() == []


def test_destination_requires_origin(index):
    with pytest.raises(ValueError):
        RouteSelection(index).select_destination("santiago")
