from __future__ import annotations

import argparse
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(APP_DIR))

from freight_quote.config import load_app_config  # noqa: E402
from freight_quote.errors import RateSheetFetchError  # noqa: E402
from freight_quote.models import ContainerType, Incoterm, Mode, OverallCargo, QuoteOptions  # noqa: E402
from freight_quote.pipeline import run_quote  # noqa: E402
from freight_quote.rate_sheets import RateSheet, fetch_rate_sheet, load_rate_sheet  # noqa: E402
from freight_quote.route_index import RouteIndex  # noqa: E402
from freight_quote.tariff import is_price_zero  # noqa: E402

# sample cargo used to check that every priced route can produce a breakdown
SAMPLE_CARGO = {
    Mode.AIR: OverallCargo(weight=150.0, volume=0.5),
    Mode.LCL: OverallCargo(weight=1200.0, volume=2.0),
    Mode.FCL: None,
}


def _load(mode: Mode, csv_path: Path | None, config) -> RateSheet:
    if csv_path is not None:
        return load_rate_sheet(csv_path.read_text(encoding="utf-8"), mode, header_rows=config.rates.header_rows)
    return fetch_rate_sheet(mode=mode, config=config)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load rate sheets and report routes that cannot be quoted.")
    parser.add_argument("--mode", choices=[m.value for m in Mode], action="append", help="Mode(s) to check (default: all).")
    parser.add_argument("--csv", type=Path, help="Read a local CSV export instead of fetching (requires one --mode).")
    parser.add_argument("--config", type=Path, default=APP_DIR / "config.toml")
    args = parser.parse_args(argv)

    modes = [Mode(m) for m in (args.mode or [m.value for m in Mode])]
    if args.csv is not None and len(modes) != 1:
        parser.error("--csv needs exactly one --mode")

    config = load_app_config(args.config)
    failures: list[str] = []

    for mode in modes:
        try:
            sheet = _load(mode, args.csv, config)
        except RateSheetFetchError as e:
            failures.append(f"{mode.value}: {e}")
            continue

        index = RouteIndex(sheet.routes)
        zero = [r for r in sheet.routes if is_price_zero(r)]
        print(
            f"[{mode.value}] routes={len(sheet.routes)} skipped={sheet.skipped_rows} "
            f"origins={len(index.origins())} manual_quote={len(zero)}"
        )
        if not sheet.routes:
            failures.append(f"{mode.value}: no routes loaded")
            continue

        options = QuoteOptions(incoterm=Incoterm.FOB, container_type=ContainerType.HQ40 if mode is Mode.FCL else None)
        for route in sheet.routes:
            if is_price_zero(route):
                continue
            result = run_quote(route=route, config=config, options=options, overall=SAMPLE_CARGO[mode])
            if result.breakdown is None:
                codes = ", ".join(i.code for i in result.blocking_issues)
                print(f"  - {route.id} (row {route.row_number}) {route.origin} -> {route.destination}: {codes}")
                failures.append(f"{mode.value}: {route.id} {codes}")

    if failures:
        print("VALIDATION FAILED")
        for f in failures:
            print("-", f)
        return 1

    print(f"VALIDATION OK ({len(modes)} mode(s))")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
