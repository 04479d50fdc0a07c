"""
Per-provider normalization of raw search + detail payloads into Product.

Each provider is described by a FieldMap: ordered accessor paths for every
canonical field, detail record first and search result second. Adding a
fallback is adding a path, not a branch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pricescan.core.extract import (
    Path,
    as_number,
    as_text,
    dig,
    find_spec_by_name,
    first_defined,
    first_item,
    normalize_currency,
    normalize_date,
    pick_list,
    pick_text,
)
from pricescan.core.logging import get_logger
from pricescan.schemas.search import Offer, Product, ProductError, Review

logger = get_logger(__name__)

Chain = List[Tuple[str, Path]]

RESULT_KEYS = ("organic_results", "search_results", "shopping_results", "results")


def _chain(*paths: Union[str, Path], sources: Sequence[str] = ("product", "search")) -> Chain:
    """Every path against every source, sources outermost (detail before search)."""
    return [(s, p if isinstance(p, tuple) else (p,)) for s in sources for p in paths]


@dataclass(frozen=True)
class FieldMap:
    platform: str
    default_fulfiller: str
    multi_seller: bool
    # keys that may hold the search result list, and the nested detail object
    result_keys: Tuple[str, ...] = RESULT_KEYS
    detail_keys: Tuple[str, ...] = ("product", "product_results", "product_result")
    # identifier fields on the first search result
    search_id_keys: Tuple[str, ...] = ("product_id", "id")
    id_paths: Chain = field(default_factory=list)
    title_paths: Chain = field(default_factory=lambda: _chain("title", "name"))
    url_paths: Chain = field(default_factory=list)
    image_paths: Chain = field(default_factory=list)
    upc_paths: Chain = field(default_factory=lambda: _chain("upc", ("identifiers", "upc")))
    spec_paths: Chain = field(default_factory=list)
    offer_paths: Chain = field(default_factory=list)
    review_paths: Chain = field(default_factory=list)

    def identifier(self, raw_search: Any) -> Optional[str]:
        """
        Identifier of the FIRST search result only; no ranking.
        None when the result list is empty or the entry has no id field.
        """
        first = first_item(raw_search, self.result_keys)
        return pick_text({"search": first}, _chain(*self.search_id_keys, sources=("search",)))


AMAZON = FieldMap(
    platform="amazon",
    default_fulfiller="Amazon",
    multi_seller=True,
    search_id_keys=("asin", "product_id", "id"),
    id_paths=_chain("asin", "product_id", "id"),
    url_paths=_chain("link", "url", "product_link", "link_clean"),
    image_paths=_chain("main_image", "image", "thumbnail", ("thumbnails", 0), ("images", 0)),
    spec_paths=[
        ("product", ("specifications",)),
        ("product", ("product_details",)),
        ("detail", ("product_details",)),
        ("detail", ("specifications",)),
        ("search", ("specifications",)),
    ],
    offer_paths=[
        ("product", ("offers",)),
        ("detail", ("offers",)),
        ("product", ("other_sellers",)),
        ("detail", ("other_sellers",)),
        ("product", ("buying_options",)),
    ],
    review_paths=[
        ("product", ("reviews",)),
        ("detail", ("reviews",)),
        ("detail", ("reviews_information", "authors_reviews")),
        ("product", ("reviews_information", "authors_reviews")),
        ("detail", ("top_reviews",)),
    ],
)

WALMART = FieldMap(
    platform="walmart",
    default_fulfiller="Walmart",
    multi_seller=True,
    search_id_keys=("us_item_id", "product_id", "id"),
    id_paths=_chain("us_item_id", "product_id", "id"),
    url_paths=_chain("product_page_url", "link", "url"),
    image_paths=_chain("thumbnail", "image", ("images", 0)),
    spec_paths=[
        ("product", ("specifications",)),
        ("product", ("specification_highlights",)),
        ("detail", ("specifications",)),
        ("search", ("specifications",)),
    ],
    offer_paths=[
        ("product", ("offers",)),
        ("detail", ("offers",)),
        ("product", ("sellers",)),
        ("detail", ("sellers",)),
    ],
    review_paths=[
        ("detail", ("reviews_results", "reviews")),
        ("product", ("reviews",)),
        ("detail", ("reviews",)),
    ],
)

EBAY = FieldMap(
    platform="ebay",
    default_fulfiller="N/A",
    multi_seller=False,
    search_id_keys=("product_id", "item_id", "epid", "id"),
    id_paths=_chain("product_id", "item_id", "epid", "id"),
    url_paths=_chain("link", "url", "item_web_url"),
    image_paths=_chain("thumbnail", "image", ("media", 0, "image", "link"), ("images", 0)),
    spec_paths=[
        ("product", ("specifications",)),
        ("product", ("item_specifics",)),
        ("detail", ("specifications",)),
        ("search", ("specifications",)),
    ],
    review_paths=[
        ("product", ("reviews",)),
        ("detail", ("reviews",)),
    ],
)

FIELD_MAPS: Dict[str, FieldMap] = {fm.platform: fm for fm in (AMAZON, WALMART, EBAY)}


# --- offers -----------------------------------------------------------------

_OFFER_SELLER = _chain("seller_name", ("seller", "name"), "seller", "merchant", "source", sources=("offer",))
_OFFER_LINK = _chain("link", "url", "product_link", "seller_link", sources=("offer",))
_OFFER_CONDITION = _chain("condition", "item_condition", sources=("offer",))
_OFFER_DELIVERY = _chain("delivery", "shipping", sources=("offer",))
_OFFER_FULFILLER = _chain("fulfilled_by", "fullfilled_by", "ships_from", sources=("offer",))


def _map_offer(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, Mapping):
        return None

    src = {"offer": raw}
    price_raw = raw.get("price")
    extracted = first_defined(raw.get("extracted_price"), raw.get("price_extracted"))
    amount, currency = normalize_currency(
        first_defined(extracted, dig(price_raw, "value"), price_raw),
        first_defined(dig(price_raw, "currency"), raw.get("currency")),
    )

    price_text = as_text(price_raw) if isinstance(price_raw, str) else None

    return {
        "seller_name": pick_text(src, _OFFER_SELLER),
        "condition": pick_text(src, _OFFER_CONDITION),
        "link": pick_text(src, _OFFER_LINK),
        "price": amount,
        "price_text": price_text,
        "currency": currency,
        "delivery": pick_text(src, _OFFER_DELIVERY),
        "fullfilled_by": pick_text(src, _OFFER_FULFILLER),
        # blank strings and empty price objects count as missing
        "_has_price": amount is not None or price_text is not None,
    }


def _normalize_offers(raw_offers: List[Any]) -> List[Offer]:
    """
    Drops offers without seller, link or any price field, then keeps the first
    offer per (seller_name, condition, link). Price is not part of the key.
    """
    mapped = [_map_offer(o) for o in raw_offers]
    kept = [
        o for o in mapped
        if o is not None and o["seller_name"] and o["link"] and o["_has_price"]
    ]

    seen = set()
    offers: List[Offer] = []
    for o in kept:
        key = (o["seller_name"], o["condition"], o["link"])
        if key in seen:
            continue
        seen.add(key)
        o.pop("_has_price")
        offers.append(Offer(**o))
    return offers


# --- reviews ----------------------------------------------------------------

_REVIEW_TEXT = _chain("text", "body", "content", "snippet", "review", "title", sources=("review",))
_REVIEW_RATING = _chain("rating", "stars", ("rating", "value"), sources=("review",))
_REVIEW_DATE = _chain(
    "date", "review_date", "submission_time", "review_submission_time", "published_at",
    sources=("review",),
)
_REVIEW_USER = _chain(
    "user_name", "author", ("author", "name"), ("user", "name"), "username", "user_nickname", "reviewer",
    sources=("review",),
)
_REVIEW_FULFILLER = _chain("fullfilled_by", "fulfilled_by", "fulfillment", sources=("review",))


def _normalize_review(raw: Any, default_fulfiller: str) -> Review:
    src = {"review": raw if isinstance(raw, Mapping) else {}}
    rating = first_defined(*(as_number(dig(src["review"], *p)) for _, p in _REVIEW_RATING))
    return Review(
        text=pick_text(src, _REVIEW_TEXT),
        rating=rating,
        date=normalize_date(pick_text(src, _REVIEW_DATE)),
        user_name=pick_text(src, _REVIEW_USER) or "Anonymous",
        fullfilled_by=pick_text(src, _REVIEW_FULFILLER) or default_fulfiller,
    )


# --- product ----------------------------------------------------------------

def _detail_record(fm: FieldMap, raw_product: Any) -> Any:
    if not isinstance(raw_product, Mapping):
        return None
    for key in fm.detail_keys:
        nested = raw_product.get(key)
        if isinstance(nested, Mapping):
            return nested
    return raw_product


def _resolve_upc(fm: FieldMap, sources: Mapping[str, Any]) -> Optional[str]:
    direct = pick_text(sources, fm.upc_paths)
    if direct:
        return direct
    for source_name, path in fm.spec_paths:
        value = as_text(find_spec_by_name(dig(sources.get(source_name), *path), "upc"))
        if value:
            return value
    return None


def _normalize_with(fm: FieldMap, raw_search: Any, raw_product: Any) -> Product:
    if raw_search is None and raw_product is None:
        raise ValueError("No search or product data returned by provider")

    sources = {
        "search": first_item(raw_search, fm.result_keys),
        "product": _detail_record(fm, raw_product),
        "detail": raw_product if isinstance(raw_product, Mapping) else None,
    }

    offers: List[Offer] = []
    if fm.multi_seller:
        offers = _normalize_offers(pick_list(sources, fm.offer_paths))

    reviews = [
        _normalize_review(r, fm.default_fulfiller)
        for r in pick_list(sources, fm.review_paths)
        if isinstance(r, Mapping)
    ]

    return Product(
        platform=fm.platform,
        id=pick_text(sources, fm.id_paths),
        upc=_resolve_upc(fm, sources),
        title=pick_text(sources, fm.title_paths),
        url=pick_text(sources, fm.url_paths),
        image=pick_text(sources, fm.image_paths),
        offers=offers,
        reviews=reviews,
    )


def normalize(platform: str, raw_search: Any, raw_product: Any) -> Union[Product, ProductError]:
    """
    Maps one provider's raw (search, detail) pair to a Product.

    Never raises: unknown platforms and any failure while mapping come back as
    ProductError with the raw payloads attached.
    """
    fm = FIELD_MAPS.get(platform)
    if fm is None:
        return ProductError(
            platform=platform,
            error=f"Unsupported platform: {platform}",
            raw_search=raw_search,
            raw_product=raw_product,
        )

    try:
        return _normalize_with(fm, raw_search, raw_product)
    except Exception as e:
        logger.warning("Normalization failed for %s: %s", platform, e)
        return ProductError(
            platform=platform,
            error=str(e) or type(e).__name__,
            raw_search=raw_search,
            raw_product=raw_product,
        )
