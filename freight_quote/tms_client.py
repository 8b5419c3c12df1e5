"""
TMS client for quote submission.

Posts a create-quote payload to the TMS REST API. The bearer token is owned
by the caller; this client never refreshes or stores it.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import requests

from freight_quote.config import TmsConfig
from freight_quote.errors import TmsSubmissionError

logger = logging.getLogger(__name__)


@dataclass
class TmsResponse:
    """Result of a create-quote call."""
    status_code: int
    data: Any | None = None

    @property
    def quote_id(self) -> str | None:
        if isinstance(self.data, dict):
            for key in ("id", "quoteId", "number"):
                if self.data.get(key) is not None:
                    return str(self.data[key])
        return None


class TmsClient:
    """
    Thin client for the TMS quotes endpoint.

    Usage:
        client = TmsClient(config.tms)
        result = client.create_quote(payload, access_token=token)
        print(result.quote_id)
    """

    def __init__(self, config: TmsConfig, *, session: requests.Session | None = None):
        self.base_url = config.base_url.rstrip("/")
        self.timeout_s = config.timeout_s
        self._http = session or requests

    def create_quote(self, payload: dict[str, Any], *, access_token: str) -> TmsResponse:
        """
        Submit a quote.

        Args:
            payload: Body built by `build_quote_payload`.
            access_token: Bearer token for the TMS.

        Returns:
            TmsResponse with the decoded JSON body (or raw text when not JSON).

        Raises:
            TmsSubmissionError: on transport failure or a non-2xx response.
        """
        if not access_token:
            raise TmsSubmissionError("Missing TMS access token.")

        url = f"{self.base_url}/Quotes/create"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            response = self._http.post(url, headers=headers, json=payload, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TmsSubmissionError(f"Quote submission failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning("TMS rejected quote: HTTP %s", response.status_code)
            raise TmsSubmissionError(
                f"Quote submission failed: HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            data = response.text

        result = TmsResponse(status_code=response.status_code, data=data)
        logger.info("Submitted quote to TMS (id=%s)", result.quote_id)
        return result
