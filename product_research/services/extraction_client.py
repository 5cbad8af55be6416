# product_research/services/extraction_client.py

"""Structured product extraction through the Diffbot Product API."""

import logging
from typing import Any

from curl_cffi import requests as curl_requests

from product_research.config.settings import Settings
from product_research.errors import (
    NotFound,
    ParseError,
    RateLimited,
    UpstreamHttpError,
)
from product_research.sources.base_source import clean_params

logger = logging.getLogger("product_research.extraction")

PROVIDER = "Diffbot"


class ExtractionClient:
    """Fetches the first product object the service finds on a page."""

    def __init__(self, token: str) -> None:
        self.token = token
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def extract(self, url: str) -> dict[str, Any]:
        """Return the raw product object for *url*.

        Raises :class:`RateLimited` on 429, :class:`UpstreamHttpError`
        on any other error status and :class:`NotFound` when the page
        yields no product.
        """
        params = clean_params({
            "token": self.token,
            "url": url,
            "fields": ",".join(self.settings.EXTRACTION_FIELDS),
        })
        resp = self.session.get(
            self.settings.EXTRACTION_API,
            params=params,
            timeout=self.settings.REQUEST_TIMEOUT,
        )
        body = str(resp.text or "")
        if resp.status_code == 429:
            raise RateLimited(PROVIDER, body)
        if resp.status_code >= 400:
            raise UpstreamHttpError(PROVIDER, resp.status_code, body)

        try:
            data = resp.json()
        except ValueError as exc:
            msg = f"{PROVIDER}: response is not JSON"
            raise ParseError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{PROVIDER}: unexpected payload type"
            raise ParseError(msg)

        # Errors can also arrive inside a 200 envelope
        if data.get("error") and not data.get("objects"):
            status = int(data.get("errorCode") or 500)
            if status == 429:
                raise RateLimited(PROVIDER, str(data["error"]))
            raise UpstreamHttpError(PROVIDER, status, str(data["error"]))

        objects = data.get("objects") or []
        product = objects[0] if objects else None
        if not isinstance(product, dict):
            msg = f"{PROVIDER}: no product found"
            raise NotFound(msg)
        logger.debug("Extracted product from %s", url)
        return product
