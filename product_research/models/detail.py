# product_research/models/detail.py

"""Deep product details pulled from the extraction service."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from product_research.config.settings import Settings
from product_research.models.listing import to_int, to_number

# Persisted detail columns, appended to a batch on demand
D_TITLE = "D_Title"
D_PRICE = "D_Price"
D_CURRENCY = "D_Currency"
D_OLD_PRICE = "D_OldPrice"
D_DISCOUNT = "D_DiscountPct"
D_BRAND = "D_Brand"
D_SKU = "D_SKU"
D_SELLER = "D_Seller"
D_CATEGORY = "D_Category"
D_AVAILABILITY = "D_Availability"
D_RATING = "D_Rating"
D_REVIEW_COUNT = "D_ReviewCount"
D_REVIEWS = "D_Reviews"
D_MAIN_IMAGE = "D_MainImage"
D_IMAGES = "D_Images"
D_VARIANTS = "D_Variants"
D_FETCHED_AT = "D_FetchedAt"
D_ERROR = "D_Error"

DETAIL_COLUMNS: list[str] = [
    D_TITLE, D_PRICE, D_CURRENCY, D_OLD_PRICE, D_DISCOUNT,
    D_BRAND, D_SKU, D_SELLER, D_CATEGORY, D_AVAILABILITY,
    D_RATING, D_REVIEW_COUNT, D_REVIEWS, D_MAIN_IMAGE,
    D_IMAGES, D_VARIANTS,
]

_NUMBER_RE = re.compile(r"\d+\.?\d*")


def parse_amount(value: Any) -> float | None:
    """Parse numbers and price strings such as '¥1,280' or '$19.99'."""
    if isinstance(value, dict):
        value = value.get("amount")
    number = to_number(value)
    if number is not None:
        return number
    if not isinstance(value, str):
        return None
    numbers = _NUMBER_RE.findall(value.replace(",", ""))
    return float(numbers[0]) if numbers else None


def compute_discount(
    price: float | None, old_price: float | None,
) -> int | None:
    """Percent off, defined only when old_price > price; halves round up."""
    if price is None or old_price is None:
        return None
    if old_price <= price or old_price <= 0:
        return None
    pct = Decimal(str((1 - price / old_price) * 100))
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def truncate(text: Any, limit: int) -> str:
    """Stringify and cut to a character limit."""
    return ("" if text is None else str(text))[:limit]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "in stock" if value else "out of stock"
    if isinstance(value, dict):
        return str(value.get("name") or value.get("title") or "")
    if isinstance(value, list):
        return ", ".join(t for t in (_text(v) for v in value) if t)
    return str(value).strip()


def _image_urls(images: Any) -> list[str]:
    if not isinstance(images, list):
        return []
    urls: list[str] = []
    for image in images:
        url = image.get("url", "") if isinstance(image, dict) else image
        if isinstance(url, str) and url:
            urls.append(url)
    return urls[: Settings.MAX_IMAGES]


def _review_excerpts(reviews: Any) -> list[str]:
    if not isinstance(reviews, list):
        return []
    excerpts: list[str] = []
    for review in reviews:
        text = review.get("text", "") if isinstance(review, dict) else review
        if text:
            excerpts.append(truncate(text, Settings.REVIEW_MAX_CHARS))
        if len(excerpts) == Settings.MAX_REVIEWS:
            break
    return excerpts


def _variant_labels(variants: Any) -> list[str]:
    if not isinstance(variants, list):
        return []
    labels: list[str] = []
    for variant in variants:
        if isinstance(variant, dict):
            label = (
                variant.get("title")
                or variant.get("name")
                or variant.get("sku")
                or ""
            )
        else:
            label = variant
        if label:
            labels.append(str(label))
    return labels


def _category(obj: dict[str, Any]) -> str:
    category = _text(obj.get("category"))
    if category:
        return category
    crumbs = obj.get("breadcrumb") or []
    if isinstance(crumbs, list):
        return " > ".join(t for t in (_text(c) for c in crumbs) if t)
    return _text(crumbs)


def _split_lines(value: Any) -> list[str]:
    if not value:
        return []
    return [line for line in str(value).split("\n") if line]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(value)
    return value


@dataclass
class DetailRecord:
    """Normalised product details for one listing URL."""

    title: str = ""
    brand: str = ""
    sku: str = ""
    seller: str = ""
    category: str = ""
    availability: str = ""
    price: float | None = None
    currency: str = ""
    old_price: float | None = None
    discount_pct: int | None = None
    rating: float | None = None
    review_count: int | None = None
    reviews: list[str] = field(default_factory=lambda: list[str]())
    main_image: str = ""
    images: list[str] = field(default_factory=lambda: list[str]())
    variants: list[str] = field(default_factory=lambda: list[str]())
    fetched_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_payload(
        cls, obj: dict[str, Any], fetched_at: datetime,
    ) -> "DetailRecord":
        """Normalise one extraction-service product object."""
        offer = obj.get("offerPriceDetails") or {}
        regular = obj.get("regularPriceDetails") or {}
        price = parse_amount(obj.get("offerPrice"))
        if price is None:
            price = parse_amount(offer)
        if price is None:
            price = parse_amount(obj.get("price"))
        old_price = parse_amount(obj.get("regularPrice"))
        if old_price is None:
            old_price = parse_amount(regular)

        rating_block = obj.get("aggregateRating") or {}
        if not isinstance(rating_block, dict):
            rating_block = {}
        images = _image_urls(obj.get("images"))

        return cls(
            title=_text(obj.get("title")),
            brand=_text(obj.get("brand")),
            sku=_text(obj.get("sku")),
            seller=_text(obj.get("seller")),
            category=_category(obj),
            availability=_text(obj.get("availability")),
            price=price,
            currency=_text(
                obj.get("priceCurrency")
                or (offer.get("symbol") if isinstance(offer, dict) else "")
            ),
            old_price=old_price,
            discount_pct=compute_discount(price, old_price),
            rating=to_number(rating_block.get("value")),
            review_count=to_int(
                rating_block.get("count", rating_block.get("reviewCount"))
            ),
            reviews=_review_excerpts(obj.get("reviews")),
            main_image=images[0] if images else "",
            images=images,
            variants=_variant_labels(obj.get("variants")),
            fetched_at=fetched_at,
        )

    @classmethod
    def from_columns(cls, row: dict[str, Any]) -> "DetailRecord":
        """Rebuild a record from persisted D_ columns of a row."""
        raw_ts = str(row.get(D_FETCHED_AT) or "")
        try:
            fetched_at: datetime | None = datetime.fromisoformat(raw_ts)
        except ValueError:
            fetched_at = None
        return cls(
            title=str(row.get(D_TITLE) or ""),
            brand=str(row.get(D_BRAND) or ""),
            sku=str(row.get(D_SKU) or ""),
            seller=str(row.get(D_SELLER) or ""),
            category=str(row.get(D_CATEGORY) or ""),
            availability=str(row.get(D_AVAILABILITY) or ""),
            price=to_number(row.get(D_PRICE)),
            currency=str(row.get(D_CURRENCY) or ""),
            old_price=to_number(row.get(D_OLD_PRICE)),
            discount_pct=to_int(row.get(D_DISCOUNT)),
            rating=to_number(row.get(D_RATING)),
            review_count=to_int(row.get(D_REVIEW_COUNT)),
            reviews=_split_lines(row.get(D_REVIEWS)),
            main_image=str(row.get(D_MAIN_IMAGE) or ""),
            images=_split_lines(row.get(D_IMAGES)),
            variants=_split_lines(row.get(D_VARIANTS)),
            fetched_at=fetched_at,
            error=str(row.get(D_ERROR) or "") or None,
        )

    def to_columns(self) -> dict[str, Any]:
        """Cell values for every detail column (fetched_at/error excluded)."""
        return {
            D_TITLE: self.title,
            D_PRICE: _cell(self.price),
            D_CURRENCY: self.currency,
            D_OLD_PRICE: _cell(self.old_price),
            D_DISCOUNT: _cell(self.discount_pct),
            D_BRAND: self.brand,
            D_SKU: self.sku,
            D_SELLER: self.seller,
            D_CATEGORY: self.category,
            D_AVAILABILITY: self.availability,
            D_RATING: _cell(self.rating),
            D_REVIEW_COUNT: _cell(self.review_count),
            D_REVIEWS: _cell(self.reviews),
            D_MAIN_IMAGE: self.main_image,
            D_IMAGES: _cell(self.images),
            D_VARIANTS: _cell(self.variants),
        }

    @property
    def has_data(self) -> bool:
        """True when any detail field is populated."""
        return any(
            value not in ("", None)
            for value in self.to_columns().values()
        )
