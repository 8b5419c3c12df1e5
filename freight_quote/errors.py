from __future__ import annotations


class FreightQuoteError(Exception):
    """Base class for errors raised by the quote engine's collaborators."""


class RateSheetFetchError(FreightQuoteError):
    def __init__(self, message: str, *, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TmsSubmissionError(FreightQuoteError):
    def __init__(self, message: str, *, status_code: int | None = None, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
