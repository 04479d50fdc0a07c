from typing import Optional

from fastapi import APIRouter

from pricescan.core.pipeline import search as run_search
from pricescan.schemas.search import SearchResponse

router = APIRouter(tags=["search"])


@router.get("/search", response_model=SearchResponse)
async def search(q: Optional[str] = None):
    """
    Looks up the top match for `q` on every enabled provider.

    Always 200 once the query and credential are valid: providers that fail
    show up as entries with an `error` field. Missing/blank `q` is a 400 and an
    unset SerpAPI key a 500, both rendered by the handlers in main.py.
    """
    return await run_search(q)
