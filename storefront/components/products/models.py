from dataclasses import dataclass
from decimal import Decimal

from storefront.domain.entities import Product, ProductVariant


@dataclass(frozen=True)
class ProductValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ProductListing:
    """A product row in a list, with the cheapest active variant price."""

    product: Product
    min_price: Decimal | None


@dataclass(frozen=True)
class ProductDetail:
    product: Product
    variants: tuple[ProductVariant, ...]
