from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, List, Union


class Offer(BaseModel):
    seller_name: str
    condition: Optional[str] = None
    link: str
    price: Optional[float] = None       # parsed numeric value
    price_text: Optional[str] = None    # e.g. "$599.99" as the provider shows it
    currency: str = "USD"
    delivery: Optional[str] = None
    fullfilled_by: Optional[str] = None


class Review(BaseModel):
    text: Optional[str] = None
    rating: Optional[float] = None
    date: Optional[str] = None
    user_name: str = "Anonymous"
    fullfilled_by: str = "N/A"


class Product(BaseModel):
    # keeps an error payload from validating as an empty Product
    model_config = ConfigDict(extra="forbid")

    platform: str
    id: Optional[str] = None
    upc: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    image: Optional[str] = None
    offers: List[Offer] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)


class ProductError(BaseModel):
    platform: str
    error: str
    raw_search: Optional[Any] = None
    raw_product: Optional[Any] = None


class SearchResponse(BaseModel):
    query: str
    results: List[Union[Product, ProductError]]
