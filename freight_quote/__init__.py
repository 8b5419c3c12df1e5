"""
Freight quote engine.

Loads published rate sheets for air, FCL and LCL, picks the tariff band for a
shipment, builds the charge breakdown and shapes it into the TMS
create-quote request.
"""
from freight_quote.chargeable import chargeable_quantity
from freight_quote.charges import build_charges
from freight_quote.config import AppConfig, load_app_config
from freight_quote.models import Mode
from freight_quote.payload import build_quote_payload
from freight_quote.pipeline import QuoteResult, run_quote
from freight_quote.rate_sheets import RateSheet, fetch_rate_sheet, load_rates
from freight_quote.route_index import RouteIndex, RouteSelection
from freight_quote.tariff import select_band, validate_weight_range

__all__ = [
    "AppConfig",
    "Mode",
    "QuoteResult",
    "RateSheet",
    "RouteIndex",
    "RouteSelection",
    "build_charges",
    "build_quote_payload",
    "chargeable_quantity",
    "fetch_rate_sheet",
    "load_app_config",
    "load_rates",
    "run_quote",
    "select_band",
    "validate_weight_range",
]
