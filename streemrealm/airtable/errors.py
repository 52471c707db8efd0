"""Airtable error taxonomy.

HTTP outcomes are classified into a fixed set of exception types so callers
can branch on the kind of failure instead of parsing messages.
"""

from __future__ import annotations


class AirtableError(Exception):
    """Base class for all Airtable gateway failures."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AirtableConfigError(AirtableError):
    """Invalid URL configuration (missing base id, token, or bad base URL)."""

    def __init__(self, detail: str = "Invalid URL configuration"):
        super().__init__(detail)


class AirtableNetworkError(AirtableError):
    """Transport-level failure: DNS, timeout, connection reset."""

    def __init__(self, cause: Exception):
        super().__init__(f"Network error: {cause}")
        self.cause = cause


class AirtableDecodingError(AirtableError):
    """A 2xx response body did not have the expected shape."""

    def __init__(self, detail: str):
        super().__init__(f"Failed to decode response: {detail}")


class AirtableUnauthorizedError(AirtableError):
    status_code = 401

    def __init__(self):
        super().__init__("Unauthorized - check API key")


class AirtableNotFoundError(AirtableError):
    status_code = 404

    def __init__(self, detail: str = "Record not found"):
        super().__init__(detail)


class AirtableRateLimitedError(AirtableError):
    status_code = 429

    def __init__(self):
        super().__init__("Rate limited - please wait")


class AirtableAPIError(AirtableError):
    """Any other non-2xx response, with the server's message when available."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(f"API error: {message}", status_code=status_code)
        self.api_message = message

    @property
    def is_schema_rejection(self) -> bool:
        """True when the base rejected the write because a column is missing.

        Airtable reports these as 422 with an "Unknown field name" message.
        Either signal is accepted.
        """
        return self.status_code == 422 or "unknown field" in self.api_message.lower()
