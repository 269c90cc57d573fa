"""Domain models for the product catalog and paginated fetches."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TypedDict

from .common import PageOffset, RateLimitSnapshot


class ProductPackage(TypedDict):
    id: str
    value: str
    price: float


class ProductRange(TypedDict):
    min: float
    max: float
    step: float
    price_rate: float


class Product(TypedDict, total=False):
    """A catalog entry as returned by the API. Passed through untouched."""
    id: str
    name: str
    country_code: str
    country_name: str
    currency: str
    created_time: str
    recipient_type: str
    image: str
    in_stock: bool
    packages: List[ProductPackage]
    range: ProductRange


class AccountBalance(TypedDict):
    balance: float
    currency: str


@dataclass
class PageResult:
    """Products from one page request plus the quota view attached to its response."""
    start: PageOffset
    products: List[Product] = field(default_factory=list)
    rate_limit: Optional[RateLimitSnapshot] = None

    def is_full(self, page_size: int) -> bool:
        return len(self.products) == page_size


@dataclass
class PageOutcome:
    """Settled result of one request within a round: a page or the error it raised."""
    start: PageOffset
    result: Optional[PageResult] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


def build_products_query(
    start: Optional[int] = None,
    limit: Optional[int] = None,
    include_test_products: Optional[bool] = None,
) -> Dict[str, Any]:
    """Builds the `/products` query string, leaving out unset values."""
    params: Dict[str, Any] = {}
    if start is not None:
        params["start"] = start
    if limit is not None:
        params["limit"] = limit
    if include_test_products is not None:
        params["include_test_products"] = "true" if include_test_products else "false"
    return params
