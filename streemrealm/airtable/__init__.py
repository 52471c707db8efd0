"""Airtable REST client, record codec and error taxonomy."""

from streemrealm.airtable.client import AirtableClient, SortSpec
from streemrealm.airtable.errors import (
    AirtableAPIError,
    AirtableConfigError,
    AirtableDecodingError,
    AirtableError,
    AirtableNetworkError,
    AirtableNotFoundError,
    AirtableRateLimitedError,
    AirtableUnauthorizedError,
)

__all__ = [
    "AirtableClient",
    "SortSpec",
    "AirtableError",
    "AirtableConfigError",
    "AirtableNetworkError",
    "AirtableDecodingError",
    "AirtableUnauthorizedError",
    "AirtableNotFoundError",
    "AirtableRateLimitedError",
    "AirtableAPIError",
]
