from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict
import logging
import os
from pathlib import Path
import threading
from typing import Any

import openai
import uvicorn
from fastapi import APIRouter, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from freight_quote.chat import ChatTurn, ask_assistant
from freight_quote.config import AppConfig, load_app_config
from freight_quote.errors import RateSheetFetchError, TmsSubmissionError
from freight_quote.models import (
    ContainerType,
    Incoterm,
    Mode,
    OverallCargo,
    Piece,
    QuoteOptions,
    RouteRate,
    UserIdentity,
)
from freight_quote.pipeline import QuoteResult, run_quote
from freight_quote.rate_sheets import RateSheet, fetch_rate_sheet
from freight_quote.route_index import RouteIndex, best_price_index, fastest_index
from freight_quote.tariff import is_price_zero
from freight_quote.tms_client import TmsClient

APP_DIR = Path(__file__).resolve().parent
CONFIG_PATH = APP_DIR / "config.toml"

logger = logging.getLogger("api_server")

RateSheetFetcher = Callable[[Mode, AppConfig], RateSheet]


class PiecePayload(BaseModel):
    length: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    weight: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    no_apilable: bool = False
    package_type_id: int | None = None
    description: str = ""


class OverallPayload(BaseModel):
    weight: float = Field(ge=0)
    volume: float = Field(ge=0)
    pieces: int = Field(default=1, ge=1)
    package_type_id: int | None = None
    description: str = ""


class UserPayload(BaseModel):
    name: str
    email: str | None = None


class QuoteRequest(BaseModel):
    route_id: str
    pieces: list[PiecePayload] | None = None
    overall: OverallPayload | None = None
    incoterm: Incoterm | None = None
    insurance_enabled: bool = False
    declared_value: str | float | None = None
    pickup_address: str | None = None
    delivery_address: str | None = None
    container_type: ContainerType | None = None
    container_count: int = 1
    include_payload: bool = False
    customer_reference: str | None = None
    user: UserPayload | None = None


class ChatTurnPayload(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str
    history: list[ChatTurnPayload] = Field(default_factory=list)


class RateSheetStore:
    """
    One rate sheet per mode, loaded lazily and replaced whole on refresh.

    The fetch runs outside the lock so a slow download does not block reads
    of other modes; when two refreshes race the last one to finish wins.
    """

    def __init__(self, *, config: AppConfig, fetcher: RateSheetFetcher | None = None):
        self._config = config
        self._fetcher = fetcher or (lambda mode, cfg: fetch_rate_sheet(mode=mode, config=cfg))
        self._sheets: dict[Mode, RateSheet] = {}
        self._indexes: dict[Mode, RouteIndex] = {}
        self._lock = threading.Lock()

    def get(self, mode: Mode, *, force: bool = False) -> RateSheet:
        with self._lock:
            cached = self._sheets.get(mode)
        if cached is not None and not force:
            return cached

        sheet = self._fetcher(mode, self._config)
        with self._lock:
            self._sheets[mode] = sheet
            self._indexes[mode] = RouteIndex(sheet.routes)
        return sheet

    def index(self, mode: Mode) -> RouteIndex:
        with self._lock:
            idx = self._indexes.get(mode)
        if idx is not None:
            return idx
        self.get(mode)
        with self._lock:
            return self._indexes[mode]

    def invalidate(self, mode: Mode | None = None) -> None:
        with self._lock:
            if mode is None:
                self._sheets.clear()
                self._indexes.clear()
            else:
                self._sheets.pop(mode, None)
                self._indexes.pop(mode, None)


def _configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if value.lower().startswith("bearer "):
        value = value[7:].strip()
    return value or None


def _sheet_summary(sheet: RateSheet) -> dict[str, Any]:
    return {
        "mode": sheet.mode.value,
        "routes": len(sheet.routes),
        "skipped_rows": sheet.skipped_rows,
        "source_url": sheet.source_url,
        "fetched_at": sheet.fetched_at,
        "warnings": sheet.warnings,
    }


def _route_row(route: RouteRate) -> dict[str, Any]:
    return route.to_dict() | {"price_zero": is_price_zero(route)}


def _quote_inputs(payload: QuoteRequest) -> tuple[QuoteOptions, list[Piece] | None, OverallCargo | None]:
    options = QuoteOptions(
        incoterm=payload.incoterm,
        insurance_enabled=payload.insurance_enabled,
        declared_value=payload.declared_value,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        container_type=payload.container_type,
        container_count=payload.container_count,
    )
    pieces = [Piece(**p.model_dump()) for p in payload.pieces] if payload.pieces else None
    overall = OverallCargo(**payload.overall.model_dump()) if payload.overall else None
    return options, pieces, overall


def create_app(
    config: AppConfig | None = None,
    *,
    fetcher: RateSheetFetcher | None = None,
    tms_client: TmsClient | None = None,
    openai_client: Any | None = None,
) -> FastAPI:
    _configure_logging()
    config = config or load_app_config(CONFIG_PATH)
    store = RateSheetStore(config=config, fetcher=fetcher)
    tms = tms_client or TmsClient(config.tms)

    app = FastAPI(title="Freight Quote Engine API", version="1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.rate_sheets = store

    router = APIRouter(prefix="/api/v1")

    def _load(mode: Mode, *, force: bool = False) -> RateSheet:
        try:
            return store.get(mode, force=force)
        except RateSheetFetchError as e:
            logger.warning("Rate sheet fetch failed for %s: %s", mode.value, e)
            raise HTTPException(status_code=502, detail=str(e)) from e
        except ValueError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e

    def _index(mode: Mode) -> RouteIndex:
        _load(mode)
        return store.index(mode)

    def _quote(mode: Mode, payload: QuoteRequest, *, include_payload: bool) -> QuoteResult:
        route = _index(mode).get(payload.route_id)
        if route is None:
            raise HTTPException(status_code=404, detail=f"Route not found: {payload.route_id}")
        options, pieces, overall = _quote_inputs(payload)
        user = UserIdentity(name=payload.user.name, email=payload.user.email) if payload.user else None
        return run_quote(
            route=route,
            config=config,
            options=options,
            pieces=pieces,
            overall=overall,
            user=user,
            include_payload=include_payload,
            customer_reference=payload.customer_reference,
        )

    @router.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @router.post("/rate-sheets/{mode}/refresh")
    def refresh_rate_sheet(mode: Mode) -> dict[str, Any]:
        return _sheet_summary(_load(mode, force=True))

    @router.get("/rate-sheets/{mode}/routes")
    def list_routes(mode: Mode, origin: str | None = None, destination: str | None = None) -> dict[str, Any]:
        index = _index(mode)
        routes = index.routes
        if origin:
            routes = [r for r in routes if r.origin_key == origin.strip().lower()]
        if destination:
            routes = [r for r in routes if r.destination_key == destination.strip().lower()]
        return {"mode": mode.value, "routes": [_route_row(r) for r in routes]}

    @router.get("/rate-sheets/{mode}/origins")
    def list_origins(mode: Mode) -> dict[str, Any]:
        return {"mode": mode.value, "origins": [asdict(o) for o in _index(mode).origins()]}

    @router.get("/rate-sheets/{mode}/destinations")
    def list_destinations(mode: Mode, origin: str) -> dict[str, Any]:
        return {
            "mode": mode.value,
            "origin": origin,
            "destinations": [asdict(d) for d in _index(mode).destinations(origin)],
        }

    @router.get("/rate-sheets/{mode}/candidates")
    def list_candidates(
        mode: Mode,
        origin: str,
        destination: str,
        carrier: list[str] | None = Query(default=None),
        currency: list[str] | None = Query(default=None),
    ) -> dict[str, Any]:
        index = _index(mode)
        try:
            candidates = index.candidates(origin, destination, carriers=carrier, currencies=currency)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {
            "mode": mode.value,
            "carriers": index.carriers(origin, destination),
            "currencies": [c.value for c in index.currencies(origin, destination)],
            "candidates": [_route_row(r) for r in candidates],
            "best_price_index": best_price_index(candidates),
            "fastest_index": fastest_index(candidates),
        }

    @router.post("/quote/{mode}")
    def quote(mode: Mode, payload: QuoteRequest) -> dict[str, Any]:
        result = _quote(mode, payload, include_payload=payload.include_payload)
        return result.to_dict()

    @router.post("/quote/{mode}/submit")
    def submit_quote(
        mode: Mode,
        payload: QuoteRequest,
        authorization: str | None = Header(default=None),
    ) -> dict[str, Any]:
        token = _bearer_token(authorization)
        if not token:
            raise HTTPException(status_code=401, detail="Missing TMS bearer token. Provide `Authorization: Bearer <token>`.")
        if payload.user is None:
            raise HTTPException(status_code=400, detail="`user` is required to submit a quote.")

        result = _quote(mode, payload, include_payload=True)
        if not result.can_submit or result.payload is None:
            raise HTTPException(
                status_code=422,
                detail={
                    "message": "Quote has blocking issues.",
                    "issues": [asdict(i) for i in result.blocking_issues],
                },
            )

        try:
            response = tms.create_quote(result.payload, access_token=token)
        except TmsSubmissionError as e:
            raise HTTPException(
                status_code=502,
                detail={"message": str(e), "status_code": e.status_code, "body": e.response_body},
            ) from e

        return {
            "ok": True,
            "tms": {"status_code": response.status_code, "quote_id": response.quote_id, "data": response.data},
            "quote": result.to_dict(),
        }

    @router.post("/chat")
    def chat(
        payload: ChatRequest,
        x_openai_api_key: str | None = Header(default=None),
    ) -> dict[str, Any]:
        if not payload.message.strip():
            raise HTTPException(status_code=400, detail="Message is required.")
        api_key = (x_openai_api_key or "").strip() or config.openai.api_key
        if openai_client is None and not api_key:
            raise HTTPException(status_code=401, detail="Missing OpenAI API key. Provide `X-OpenAI-Api-Key`.")

        try:
            reply = ask_assistant(
                payload.message,
                config=config.openai,
                history=[ChatTurn(role=t.role, content=t.content) for t in payload.history],
                api_key=api_key,
                client=openai_client,
            )
        except openai.RateLimitError as e:
            raise HTTPException(status_code=429, detail="Rate limit exceeded. Please try again later.") from e
        except openai.OpenAIError as e:
            logger.warning("Chat completion failed: %s", e)
            raise HTTPException(status_code=502, detail=f"Chat assistant failed: {e.__class__.__name__}") from e

        return {"ok": True, "message": reply.message, "llm_usage": reply.llm_usage}

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("API_HOST", "127.0.0.1"), port=int(os.getenv("API_PORT", "8000")))
