"""
Two-phase multi-provider search.

    validate -> search (all providers, concurrently)
             -> first-result identifier per provider
             -> detail (only providers with an identifier, concurrently)
             -> normalize every enabled provider -> ordered results

Past validation nothing is fatal: a provider that fails at any step still
gets exactly one entry in the results, in configured order.
"""

import asyncio
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from pricescan.core.config import settings
from pricescan.core.errors import ConfigurationError, InvalidQueryError
from pricescan.core.logging import get_logger
from pricescan.core.normalizers import normalize
from pricescan.core.providers import Provider, enabled_tags, get_provider
from pricescan.core.serpapi import fetch_json, get_serpapi_key
from pricescan.schemas.search import ProductError, SearchResponse

logger = get_logger(__name__)


async def _settle(calls: Iterable[Awaitable[Any]]) -> List[Any]:
    """Waits for every call; failures come back as exception values."""
    return await asyncio.gather(*calls, return_exceptions=True)


def _describe(phase: str, exc: BaseException) -> str:
    return f"{phase} request failed: {type(exc).__name__}: {exc}"


async def search(query: Optional[str], providers: Optional[List[str]] = None) -> SearchResponse:
    q = (query or "").strip()
    if not q:
        raise InvalidQueryError("Query parameter 'q' is required")

    api_key = get_serpapi_key()
    if not api_key:
        raise ConfigurationError("SERPAPI_API_KEY is not set")

    tags = enabled_tags(settings.ENABLED_PROVIDERS if providers is None else providers)
    registry: Dict[str, Optional[Provider]] = {t: get_provider(t) for t in tags}
    active = [t for t in tags if registry[t] is not None]

    failures: Dict[str, List[str]] = {t: [] for t in tags}
    raw_search: Dict[str, Any] = {t: None for t in tags}
    raw_product: Dict[str, Any] = {t: None for t in tags}

    logger.info("Search started: %r across %s", q, ", ".join(tags) or "no providers")

    # Phase 1: search
    outcomes = await _settle(fetch_json(registry[t].search_url(q, api_key)) for t in active)
    for t, outcome in zip(active, outcomes):
        if isinstance(outcome, BaseException):
            failures[t].append(_describe("search", outcome))
            logger.warning("[%s] search failed: %s: %s", t, type(outcome).__name__, outcome)
        else:
            raw_search[t] = outcome

    identifiers: Dict[str, str] = {}
    for t in active:
        if raw_search[t] is None:
            continue
        identifier = registry[t].extract_id(raw_search[t])
        if identifier:
            identifiers[t] = identifier
        else:
            logger.info("[%s] no identifier in first search result, skipping detail", t)

    # Phase 2: detail, only where phase 1 produced an identifier
    detail_tags = [t for t in active if t in identifiers]
    outcomes = await _settle(
        fetch_json(registry[t].detail_url(identifiers[t], api_key)) for t in detail_tags
    )
    for t, outcome in zip(detail_tags, outcomes):
        if isinstance(outcome, BaseException):
            failures[t].append(_describe("detail", outcome))
            logger.warning("[%s] detail failed: %s: %s", t, type(outcome).__name__, outcome)
        else:
            raw_product[t] = outcome

    results = []
    for t in tags:
        provider = registry[t]
        if provider is not None:
            result = provider.normalize(raw_search[t], raw_product[t])
        else:
            result = normalize(t, raw_search[t], raw_product[t])

        if isinstance(result, ProductError) and failures[t]:
            result.error = "; ".join(failures[t] + [result.error])
        results.append(result)

    logger.info(
        "Search finished: %r, %d result(s), %d error(s)",
        q,
        len(results),
        sum(isinstance(r, ProductError) for r in results),
    )
    return SearchResponse(query=q, results=results)
