from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os
import tomllib

from dotenv import load_dotenv

from freight_quote.models import Mode


@dataclass(frozen=True)
class RatesConfig:
    urls: dict[Mode, str] = field(default_factory=dict)
    header_rows: int = 2
    timeout_s: float = 30.0

    def url_for(self, mode: Mode) -> str:
        url = self.urls.get(mode)
        if not url:
            raise ValueError(f"No rate sheet URL configured for mode: {mode.value}")
        return url


@dataclass(frozen=True)
class PricingConfig:
    markup: float = 0.15
    air_volume_factor: float = 167.0
    quote_validity_days: int = 7


@dataclass(frozen=True)
class ChargesConfig:
    handling: float = 45.0
    awb_fee: float = 30.0
    bl_fee: float = 60.0
    transfer_rate: float = 0.15
    transfer_min: float = 50.0
    exw_min: float = 190.0
    # (threshold_kg, rate_per_kg), highest threshold first
    exw_steps: tuple[tuple[float, float], ...] = ((1000.0, 0.60), (500.0, 0.65), (250.0, 0.75), (0.0, 0.80))
    exw_flat_ocean: float = 45.0


@dataclass(frozen=True)
class InsuranceConfig:
    rate: float = 0.0025
    buffer_factor: float = 1.10
    minimum: float = 25.0


@dataclass(frozen=True)
class LimitsConfig:
    air_max_length_cm: float = 290.0
    air_max_width_cm: float = 290.0
    air_max_height_cm: float = 160.0
    air_max_total_weight_kg: float = 2000.0


@dataclass(frozen=True)
class TmsConfig:
    base_url: str = "https://api.linbis.com"
    timeout_s: float = 30.0
    rate_category_id: int = 2
    shipper_name: str = ""
    issuing_company: str = ""
    sales_rep: str = ""
    default_transit_days: int = 5


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 800
    history_limit: int = 10


@dataclass(frozen=True)
class AppConfig:
    rates: RatesConfig = field(default_factory=RatesConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    charges: ChargesConfig = field(default_factory=ChargesConfig)
    insurance: InsuranceConfig = field(default_factory=InsuranceConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    tms: TmsConfig = field(default_factory=TmsConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)


def load_app_config(config_path: Path) -> AppConfig:
    config_path = config_path.resolve()
    app_dir = config_path.parent

    env_path = app_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    with config_path.open("rb") as f:
        raw = tomllib.load(f)

    rates_raw = raw.get("rates", {})
    pricing = raw.get("pricing", {})
    charges = raw.get("charges", {})
    insurance = raw.get("insurance", {})
    limits = raw.get("limits", {})
    tms = raw.get("tms", {})
    openai_raw = raw.get("openai", {})

    urls: dict[Mode, str] = {}
    for mode in Mode:
        url = rates_raw.get(f"{mode.value}_url")
        if url:
            urls[mode] = str(url)

    defaults = ChargesConfig()
    exw_steps = charges.get("exw_steps")
    if exw_steps:
        steps = tuple(sorted(((float(t), float(r)) for t, r in exw_steps), reverse=True))
    else:
        steps = defaults.exw_steps

    return AppConfig(
        rates=RatesConfig(
            urls=urls,
            header_rows=int(rates_raw.get("header_rows", 2)),
            timeout_s=float(rates_raw.get("timeout_s", 30.0)),
        ),
        pricing=PricingConfig(
            markup=float(pricing.get("markup", 0.15)),
            air_volume_factor=float(pricing.get("air_volume_factor", 167.0)),
            quote_validity_days=int(pricing.get("quote_validity_days", 7)),
        ),
        charges=ChargesConfig(
            handling=float(charges.get("handling", defaults.handling)),
            awb_fee=float(charges.get("awb_fee", defaults.awb_fee)),
            bl_fee=float(charges.get("bl_fee", defaults.bl_fee)),
            transfer_rate=float(charges.get("transfer_rate", defaults.transfer_rate)),
            transfer_min=float(charges.get("transfer_min", defaults.transfer_min)),
            exw_min=float(charges.get("exw_min", defaults.exw_min)),
            exw_steps=steps,
            exw_flat_ocean=float(charges.get("exw_flat_ocean", defaults.exw_flat_ocean)),
        ),
        insurance=InsuranceConfig(
            rate=float(insurance.get("rate", 0.0025)),
            buffer_factor=float(insurance.get("buffer_factor", 1.10)),
            minimum=float(insurance.get("minimum", 25.0)),
        ),
        limits=LimitsConfig(
            air_max_length_cm=float(limits.get("air_max_length_cm", 290.0)),
            air_max_width_cm=float(limits.get("air_max_width_cm", 290.0)),
            air_max_height_cm=float(limits.get("air_max_height_cm", 160.0)),
            air_max_total_weight_kg=float(limits.get("air_max_total_weight_kg", 2000.0)),
        ),
        tms=TmsConfig(
            base_url=str(tms.get("base_url", "https://api.linbis.com")).rstrip("/"),
            timeout_s=float(tms.get("timeout_s", 30.0)),
            rate_category_id=int(tms.get("rate_category_id", 2)),
            shipper_name=str(tms.get("shipper_name", "")),
            issuing_company=str(tms.get("issuing_company", "")),
            sales_rep=str(tms.get("sales_rep", "")),
            default_transit_days=int(tms.get("default_transit_days", 5)),
        ),
        openai=OpenAIConfig(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=str(openai_raw.get("model", "gpt-4o-mini")),
            temperature=float(openai_raw.get("temperature", 0.2)),
            max_tokens=int(openai_raw.get("max_tokens", 800)),
            history_limit=int(openai_raw.get("history_limit", 10)),
        ),
    )
