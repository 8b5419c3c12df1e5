from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import io
import logging
import re

import pandas as pd
import requests

from freight_quote.config import AppConfig
from freight_quote.errors import RateSheetFetchError
from freight_quote.models import Currency, Mode, RouteRate
from freight_quote.modes import ModeSchema, schema_for

logger = logging.getLogger(__name__)

_PRICE_STRIP_RE = re.compile(r"[^\d,.]")
_PRICE_PREFIX_RE = re.compile(r"^\d*\.?\d+|^\d+\.?")
_MAX_COLUMNS = 64


@dataclass(frozen=True)
class RateSheet:
    mode: Mode
    routes: list[RouteRate]
    source_url: str | None = None
    fetched_at: str | None = None
    skipped_rows: int = 0
    warnings: list[str] = field(default_factory=list)


def normalize_key(raw: str | None) -> str:
    if not raw:
        return ""
    return str(raw).strip().lower()


def capitalize_label(raw: str | None) -> str:
    if not raw:
        return ""
    parts = re.split(r"(\s|\(|\))", str(raw).lower())
    return "".join(p[:1].upper() + p[1:] for p in parts)


def extract_price(raw: str | float | int | None) -> float:
    """Parse free-text prices such as "USD 4,50" or "$1200" into a float (0 if unparsable)."""
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw)
    cleaned = _PRICE_STRIP_RE.sub("", str(raw))
    normalized = cleaned.replace(",", ".", 1)
    m = _PRICE_PREFIX_RE.match(normalized)
    if not m:
        return 0.0
    try:
        return float(m.group(0))
    except ValueError:
        return 0.0


def parse_currency(raw: str | None, *, allowed: frozenset[Currency] | None = None) -> Currency:
    if not raw:
        return Currency.USD
    code = str(raw).strip().upper()
    try:
        currency = Currency(code)
    except ValueError:
        return Currency.USD
    if allowed is not None and currency not in allowed:
        return Currency.USD
    return currency


def parse_csv_rows(csv_text: str) -> list[list[str]]:
    if not csv_text or not csv_text.strip():
        return []
    df = pd.read_csv(
        io.StringIO(csv_text),
        header=None,
        names=list(range(_MAX_COLUMNS)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines="skip",
    ).fillna("")
    return [[str(v).strip() for v in row] for row in df.itertuples(index=False, name=None)]


def _cell(row: list[str], idx: int | None) -> str | None:
    if idx is None or idx >= len(row):
        return None
    value = row[idx].strip()
    return value or None


def _row_to_route(*, row: list[str], schema: ModeSchema, route_id: str, row_number: int) -> RouteRate | None:
    cols = schema.columns
    origin = _cell(row, cols.origin)
    destination = _cell(row, cols.destination)
    if not origin or not destination:
        return None

    bands: dict[str, str | None] = {b.label: _cell(row, b.column) for b in schema.bands}

    if schema.comparison_band is not None:
        comparison = extract_price(bands.get(schema.comparison_band))
    else:
        comparison = 0.0
        for raw in bands.values():
            if raw:
                comparison = extract_price(raw)
                break

    carrier = _cell(row, cols.carrier)
    remarks = tuple(r for r in (_cell(row, i) for i in cols.remarks) if r)

    return RouteRate(
        id=route_id,
        mode=schema.mode,
        origin=origin,
        origin_key=normalize_key(origin),
        destination=destination,
        destination_key=normalize_key(destination),
        currency=parse_currency(_cell(row, cols.currency), allowed=schema.currencies),
        bands=bands,
        carrier=carrier,
        carrier_key=normalize_key(carrier) if carrier else None,
        transit_time=_cell(row, cols.transit_time),
        frequency=_cell(row, cols.frequency),
        routing=_cell(row, cols.routing),
        company=_cell(row, cols.company),
        remarks=remarks,
        valid_until=_cell(row, cols.valid_until),
        row_number=row_number,
        price_for_comparison=comparison,
    )


def load_rate_sheet(csv_text: str, mode: Mode | str, *, header_rows: int = 2) -> RateSheet:
    schema = schema_for(mode)
    rows = parse_csv_rows(csv_text)

    routes: list[RouteRate] = []
    skipped = 0
    for i, row in enumerate(rows):
        if i < header_rows:
            continue
        route = _row_to_route(
            row=row,
            schema=schema,
            route_id=f"{schema.id_prefix}-{len(routes) + 1}",
            row_number=i + 1,
        )
        if route is None:
            skipped += 1
            continue
        routes.append(route)

    if skipped:
        logger.debug("Skipped %d %s rows without origin/destination", skipped, schema.mode.value)

    return RateSheet(mode=schema.mode, routes=routes, skipped_rows=skipped)


def load_rates(csv_text: str, mode: Mode | str, *, header_rows: int = 2) -> list[RouteRate]:
    return load_rate_sheet(csv_text, mode, header_rows=header_rows).routes


def fetch_rate_sheet(*, mode: Mode | str, config: AppConfig, session: requests.Session | None = None) -> RateSheet:
    mode = Mode(mode)
    url = config.rates.url_for(mode)
    http = session or requests

    try:
        resp = http.get(url, timeout=config.rates.timeout_s)
    except requests.RequestException as e:
        raise RateSheetFetchError(f"Failed to fetch {mode.value} rate sheet: {e}", url=url) from e

    if resp.status_code < 200 or resp.status_code >= 300:
        raise RateSheetFetchError(
            f"Failed to fetch {mode.value} rate sheet: HTTP {resp.status_code}",
            url=url,
            status_code=resp.status_code,
        )

    resp.encoding = resp.encoding or "utf-8"
    sheet = load_rate_sheet(resp.text, mode, header_rows=config.rates.header_rows)
    logger.info("Loaded %d %s routes (%d rows skipped)", len(sheet.routes), mode.value, sheet.skipped_rows)

    warnings: list[str] = []
    if not sheet.routes:
        warnings.append(f"No routes found in the {mode.value} rate sheet.")

    return RateSheet(
        mode=mode,
        routes=sheet.routes,
        source_url=url,
        fetched_at=datetime.now(timezone.utc).isoformat(),
        skipped_rows=sheet.skipped_rows,
        warnings=warnings,
    )
