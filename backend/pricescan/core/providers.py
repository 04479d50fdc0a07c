from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pricescan.core.normalizers import FIELD_MAPS, FieldMap, normalize
from pricescan.core.serpapi import build_url
from pricescan.schemas.search import Product, ProductError


@dataclass(frozen=True)
class Provider:
    """
    One search provider, reached through SerpAPI engines.
    Enabling a provider is a settings change; the pipeline never names one.
    """
    tag: str
    search_engine: str
    detail_engine: str
    id_param: str
    field_map: FieldMap
    query_param: str = "q"

    def search_url(self, query: str, api_key: str) -> str:
        return build_url(self.search_engine, {self.query_param: query}, api_key)

    def detail_url(self, identifier: str, api_key: str) -> str:
        return build_url(self.detail_engine, {self.id_param: identifier}, api_key)

    def extract_id(self, raw_search: Any) -> Optional[str]:
        return self.field_map.identifier(raw_search)

    def normalize(self, raw_search: Any, raw_product: Any) -> Union[Product, ProductError]:
        return normalize(self.tag, raw_search, raw_product)


REGISTRY: Dict[str, Provider] = {
    "amazon": Provider(
        tag="amazon",
        search_engine="amazon",
        detail_engine="amazon_product",
        id_param="asin",
        field_map=FIELD_MAPS["amazon"],
    ),
    "walmart": Provider(
        tag="walmart",
        search_engine="walmart",
        detail_engine="walmart_product",
        id_param="product_id",
        field_map=FIELD_MAPS["walmart"],
    ),
    "ebay": Provider(
        tag="ebay",
        search_engine="ebay",
        detail_engine="ebay_product",
        id_param="product_id",
        field_map=FIELD_MAPS["ebay"],
    ),
}


def get_provider(tag: str) -> Optional[Provider]:
    return REGISTRY.get(tag.strip().lower())


def enabled_tags(configured: List[str]) -> List[str]:
    """
    Configured tags in configured order, blanks and repeats dropped.
    Unknown tags are kept: they come back as "Unsupported platform" entries.
    """
    tags: List[str] = []
    for t in configured:
        tag = (t or "").strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags
