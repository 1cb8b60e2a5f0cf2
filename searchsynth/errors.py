from __future__ import annotations


class SearchSynthError(Exception):
    """Base class for errors raised inside the search pipeline."""


class DataFetchError(SearchSynthError):
    """An auxiliary data service returned nothing usable."""


class LocationNotFoundError(DataFetchError):
    def __init__(self, location: str):
        super().__init__(f"No location data found for '{location}'")
        self.location = location


class MissingConversationIdError(SearchSynthError):
    """A conversation operation was requested without a conversation id."""


class StoreError(SearchSynthError):
    """A persistence operation failed."""
