# product_research/sources/base_source.py

"""Abstract base class for all product-search source adapters."""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from curl_cffi import requests as curl_requests

from product_research.config.settings import Settings
from product_research.errors import (
    ConfigurationMissing,
    ParseError,
    ResearchError,
    UpstreamHttpError,
)
from product_research.models.listing import Platform, ProductListing


def clean_params(params: dict[str, Any]) -> dict[str, str]:
    """Drop blank values and render booleans the way query strings expect."""
    cleaned: dict[str, str] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = str(value)
    return cleaned


class BaseSource(ABC):
    """Fetches one provider's search results and maps them to listings.

    Subclasses declare the credentials they need.  When
    ``CREDENTIALS_REQUIRED`` is true a missing credential raises
    :class:`ConfigurationMissing` and an upstream failure propagates;
    otherwise both degrade to an empty result with a logged warning.
    """

    PLATFORM: Platform
    ENDPOINT: str = ""
    CREDENTIALS: tuple[str, ...] = ()
    CREDENTIALS_REQUIRED: bool = True

    def __init__(self) -> None:
        self.logger = logging.getLogger(
            f"product_research.{self.PLATFORM.value}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self.last_error: str | None = None

    @property
    def provider(self) -> str:
        """Provider name used in logs and error messages."""
        return Settings.label_for(self.PLATFORM.value)

    def _missing_credentials(self) -> list[str]:
        return [
            name for name in self.CREDENTIALS
            if not getattr(self.settings, name, "")
        ]

    def _fetch_json(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET the endpoint with retries on transport errors, 429 and 5xx."""
        query = clean_params(params)
        last_error: ResearchError | None = None
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    self.ENDPOINT,
                    params=query,
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.PLATFORM.value,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                last_error = UpstreamHttpError(self.provider, 0, str(exc))
                time.sleep(self.settings.RETRY_DELAY * (attempt + 1))
                continue

            if resp.status_code == 200:
                try:
                    data = resp.json()
                except ValueError as exc:
                    msg = f"{self.provider}: response is not JSON"
                    raise ParseError(msg) from exc
                if not isinstance(data, dict):
                    msg = f"{self.provider}: unexpected payload type"
                    raise ParseError(msg)
                return data

            self.logger.warning(
                "[%s] HTTP %d on attempt %d",
                self.PLATFORM.value,
                resp.status_code,
                attempt + 1,
            )
            error = UpstreamHttpError(
                self.provider, resp.status_code, str(resp.text or "")
            )
            if resp.status_code != 429 and resp.status_code < 500:
                raise error
            last_error = error
            time.sleep(self.settings.RETRY_DELAY * (attempt + 1))

        if last_error is None:
            last_error = UpstreamHttpError(
                self.provider, 0, "no request attempted (MAX_RETRIES < 1)"
            )
        raise last_error

    def search(self, keyword: str, limit: int) -> list[ProductListing]:
        """Return up to *limit* listings ranked by response order."""
        keyword = keyword.strip()
        if not keyword:
            msg = "keyword must not be empty"
            raise ValueError(msg)
        if limit < 1:
            msg = "limit must be a positive integer"
            raise ValueError(msg)

        missing = self._missing_credentials()
        if missing:
            if self.CREDENTIALS_REQUIRED:
                raise ConfigurationMissing(missing[0])
            names = ", ".join(missing)
            self.last_error = f"{names} not configured"
            self.logger.warning(
                "[%s] %s not configured, skipping source",
                self.PLATFORM.value,
                names,
            )
            return []

        try:
            data = self._fetch_json(self._build_params(keyword, limit))
        except ResearchError as exc:
            if self.CREDENTIALS_REQUIRED:
                raise
            self.last_error = str(exc)
            self.logger.error(
                "[%s] Search failed: %s", self.PLATFORM.value, exc,
            )
            return []

        items = [it for it in self._items(data) if isinstance(it, dict)]
        collected_at = datetime.now()
        listings = [
            self._parse_item(item, rank, collected_at)
            for rank, item in enumerate(items[:limit], start=1)
        ]
        self.logger.info(
            "[%s] %d results for '%s'",
            self.PLATFORM.value,
            len(listings),
            keyword,
        )
        return listings

    def _excerpt(self, text: Any) -> str:
        return str(text or "").strip()[: self.settings.DESCRIPTION_MAX_CHARS]

    @abstractmethod
    def _build_params(self, keyword: str, limit: int) -> dict[str, Any]:
        """Provider-specific query parameters."""
        ...

    @abstractmethod
    def _items(self, data: dict[str, Any]) -> list[Any]:
        """Extract the provider's item list (empty when absent)."""
        ...

    @abstractmethod
    def _parse_item(
        self, item: dict[str, Any], rank: int, collected_at: datetime,
    ) -> ProductListing:
        """Map one provider item to a listing; never raises on gaps."""
        ...
