from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from freight_quote.config import AppConfig, RatesConfig, TmsConfig
from freight_quote.models import Mode
from freight_quote.rate_sheets import load_rates

AIR_CSV = """Air tariffs,,,,,,,,,,,,,,,
#,Origin,Destination,45kg,100kg,300kg,500kg,1000kg,Carrier,Frequency,Transit,Routing,Remark 1,Remark 2,Currency,Valid until
1,Shanghai,Santiago,6.00,5.00,4.50,4.00,3.80,LATAM,Daily,5-7 days,PVG-GRU-SCL,,,USD,2026-12-31
2,Shanghai,Santiago,,"USD 4,80",,,,Air China,Weekly,8 days,,,,usd,2026-12-31
3,Shanghai,Santiago,0,0,0,0,0,KLM,Daily,4 days,,,,EUR,
4,Shanghai,Lima,7.00,,5.50,,,,Weekly,10 days,,,,XYZ,
5,Frankfurt,Santiago,,,4.10,,3.90,Lufthansa,Daily,3 days,,Hazmat not accepted,,EUR,
6,,Santiago,5.00,,,,,Ghost,,,,,,USD,
7,Hong Kong,Santiago,,3.20,,,,Cathay,Daily,6 days,,,,USD,
"""

FCL_CSV = """FCL tariffs,,,,,,,,,,,,
#,POL,POD,20GP,40HQ,40NOR,Carrier,TT,Remarks,,Company,Currency,Valid
1,Shanghai,San Antonio,1200,2100,,MSC,30 days,,,Blue Line,USD,2026-12-31
2,Shanghai,San Antonio,1100,1900,2500,Maersk,28-32 days,Reefer on request,,,USD,
3,Ningbo,Valparaiso,,,,CMA,35 days,,,,EUR,
"""

LCL_CSV = """LCL tariffs,,,,,,,,,,
#,POL,Via,POD,OF W/M,Currency,Frequency,TT,Operator,Remarks,Valid
1,Hamburg,Rotterdam,Valparaiso,85,EUR,Weekly,35 days,Craft,,2026-12-31
2,Hamburg,,Valparaiso,"USD 78,50",GBP,Weekly,40 days,Ecu,,
"""

CSV_BY_MODE = {Mode.AIR: AIR_CSV, Mode.FCL: FCL_CSV, Mode.LCL: LCL_CSV}


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        rates=RatesConfig(urls={m: f"https://sheets.example/{m.value}.csv" for m in Mode}),
        tms=TmsConfig(
            base_url="https://tms.example",
            shipper_name="SEEMANN Y CIA LTDA",
            issuing_company="MUELLER-GYSIN LIMITED",
            sales_rep="Ignacio Maldonado",
        ),
    )


@pytest.fixture
def air_routes():
    return load_rates(AIR_CSV, Mode.AIR)


@pytest.fixture
def fcl_routes():
    return load_rates(FCL_CSV, Mode.FCL)


@pytest.fixture
def lcl_routes():
    return load_rates(LCL_CSV, Mode.LCL)


def route_by_carrier(routes, carrier: str):
    for r in routes:
        if r.carrier == carrier:
            return r
    raise KeyError(carrier)


class FakeResponse:
    def __init__(self, status_code: int = 200, *, text: str = "", json_data: Any = None):
        self.status_code = status_code
        self.text = text
        self.encoding = None
        self._json = json_data

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    """Records calls and replays a canned response (or raises)."""

    def __init__(self, response: FakeResponse | None = None, *, error: Exception | None = None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def _do(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._do("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._do("POST", url, **kwargs)


class FakeOpenAI:
    def __init__(self, content: str = "FOB means Free On Board."):
        self.requests: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self._content = content

    def _create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self._content))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150),
        )
