"""Image proxy: fetch a remote image server-side so browsers skip CORS."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

import requests

from server.errors import InvalidUrlError, ProxyFetchError
from server.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


def _check_url(url: Optional[str]) -> str:
    if not url or not isinstance(url, str):
        raise InvalidUrlError()
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError()
    return url.strip()


def fetch_image(url: Optional[str], timeout: float = 15.0) -> tuple[bytes, str]:
    """Return (content, content_type) of the resource at url."""
    url = _check_url(url)
    try:
        r = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        logger.error(f"Proxy fetch failed for {url}: {exc}")
        raise ProxyFetchError() from exc

    content_type = r.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return r.content, content_type
