import asyncio
import os
import re
from typing import Any, Dict, Mapping, Optional

import httpx

from pricescan.core.config import settings
from pricescan.core.errors import ProviderRequestError, ProviderTimeoutError
from pricescan.core.logging import get_logger, redact_key

logger = get_logger(__name__)

_NO_RESULTS = re.compile(r"hasn'?t returned any results", re.IGNORECASE)


def get_serpapi_key() -> str:
    """
    Returns the configured key or "" when none is set.
    Callers decide whether a missing key is fatal.
    """
    # Prefer pydantic settings, fallback to env
    key = (getattr(settings, "SERPAPI_API_KEY", "") or "").strip()
    if not key:
        key = (os.environ.get("SERPAPI_API_KEY", "") or "").strip()
    return key


def build_url(
    engine: str,
    params: Mapping[str, Any],
    api_key: str,
    base: Optional[str] = None,
) -> str:
    """
    Builds a SerpAPI request URL:
        <base>?engine=<engine>&<params...>&api_key=<key>

    Values are URL-encoded by httpx. None values are dropped so optional
    parameters can be passed straight through.
    """
    query: Dict[str, Any] = {"engine": engine}
    for k, v in params.items():
        if v is not None:
            query[k] = v
    query["api_key"] = api_key

    return str(httpx.URL(base or settings.SERPAPI_BASE, params=query))


async def _get(url: str, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.get(url)


async def fetch_json(url: str, timeout: Optional[float] = None) -> Dict[str, Any]:
    """
    Single GET against a provider endpoint, returning the decoded JSON body.

    - No retries: one attempt per call.
    - The whole call is cancelled once `timeout` seconds pass (ProviderTimeoutError).
    - Non-2xx responses raise ProviderRequestError with status + body.
    - SerpAPI engine errors ({"error": "..."} with 200) raise ProviderRequestError too.
    - Network failures propagate as the underlying httpx.TransportError.
    """
    timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
    safe_url = redact_key(url)

    try:
        r = await asyncio.wait_for(_get(url, timeout), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        raise ProviderTimeoutError(
            f"Request timed out after {timeout:g}s and was cancelled: {safe_url}",
            timeout=timeout,
        )

    if r.status_code < 200 or r.status_code >= 300:
        body = redact_key(r.text)[:2000]
        raise ProviderRequestError(
            f"SerpAPI request failed: {r.status_code}\nBODY:\n{body}",
            status_code=r.status_code,
            body=body,
        )

    data = r.json()

    # Surface engine error payloads clearly. "No results" is reported the same
    # way but is an ordinary empty search, not a failure.
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, str) and not _NO_RESULTS.search(error):
        raise ProviderRequestError(f"SerpAPI error: {data['error']}", status_code=r.status_code)

    logger.debug("Fetched %s (%s)", safe_url, r.status_code)
    return data
