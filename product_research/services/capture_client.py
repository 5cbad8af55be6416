# product_research/services/capture_client.py

"""Full-page PDF capture of a product page through ScreenshotOne."""

import logging
import time
from typing import Any

from curl_cffi import requests as curl_requests

from product_research.config.settings import Settings
from product_research.errors import NotFound, ParseError, UpstreamHttpError
from product_research.sources.base_source import clean_params
from product_research.storage.file_storage import FileStorage, StoredFile

logger = logging.getLogger("product_research.capture")

PROVIDER = "ScreenshotOne"


def artifact_reference(data: dict[str, Any]) -> str:
    """Pull the artifact URL out of a direct or wrapped response."""
    nested = data.get("data") or {}
    screenshot = nested.get("screenshot") if isinstance(nested, dict) else None
    if not isinstance(screenshot, dict):
        screenshot = {}
    return str(
        data.get("screenshot_url")
        or data.get("url")
        or screenshot.get("url")
        or ""
    )


class CaptureClient:
    """Renders a URL remotely, downloads the artifact and stores it.

    A single attempt per call: non-2xx answers, a missing artifact
    reference and download failures all raise.
    """

    def __init__(
        self, access_key: str, storage: FileStorage | None = None,
    ) -> None:
        self.access_key = access_key
        self.storage = storage or FileStorage()
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _request_capture(self, url: str) -> str:
        params = clean_params({
            "access_key": self.access_key,
            "url": url,
            **self.settings.CAPTURE_OPTIONS,
        })
        resp = self.session.get(
            self.settings.CAPTURE_API,
            params=params,
            timeout=self.settings.CAPTURE_TIMEOUT,
        )
        if not 200 <= resp.status_code < 300:
            raise UpstreamHttpError(
                PROVIDER, resp.status_code, str(resp.text or "")
            )
        try:
            data = resp.json()
        except ValueError as exc:
            msg = f"{PROVIDER}: response is not JSON"
            raise ParseError(msg) from exc
        reference = artifact_reference(data) if isinstance(data, dict) else ""
        if not reference:
            msg = f"{PROVIDER}: screenshot URL not found"
            raise NotFound(msg)
        return reference

    def capture(self, url: str) -> StoredFile:
        """Capture *url* and return the stored artifact."""
        reference = self._request_capture(url)
        download = self.session.get(
            reference, timeout=self.settings.REQUEST_TIMEOUT,
        )
        if not 200 <= download.status_code < 300:
            raise UpstreamHttpError(PROVIDER, download.status_code)
        name = f"shot_{int(time.time() * 1000)}.pdf"
        stored = self.storage.save(name, download.content)
        logger.info("Captured %s -> %s", url, stored.path)
        return stored
