# ABOUTME: Parsing functions for FoodGraph catalog API JSON responses.
# ABOUTME: Converts FoodGraph product documents into CandidateProduct instances.

from typing import Any

from shelfmatch.catalog.retailers import retailers_from_urls
from shelfmatch.catalog.types import CandidateProduct

# Image types in order of preference for visual comparison.
_IMAGE_TYPE_PREFERENCE = ("FRONT",)


def _image_url(image: dict[str, Any]) -> str | None:
    """Pick the best rendition of one image entry (desktop over mobile)."""
    urls = image.get("urls") or {}
    return urls.get("desktop") or urls.get("mobile") or None


def front_image_urls(product: dict[str, Any]) -> tuple[str, ...]:
    """Return usable image URLs for a product, front image first.

    FoodGraph lists several images per product (FRONT, BACK, NUTRITION, ...).
    The front shot is what matches a shelf crop, so it leads; other images
    follow in catalog order as fallbacks.
    """
    images = product.get("images") or []
    preferred: list[str] = []
    others: list[str] = []
    for image in images:
        url = _image_url(image)
        if not url:
            continue
        if image.get("type") in _IMAGE_TYPE_PREFERENCE:
            preferred.append(url)
        else:
            others.append(url)
    return tuple(dict.fromkeys(preferred + others))


def catalog_key(product: dict[str, Any]) -> str | None:
    """Return the stable catalog key: the GTIN14 if present, else the primary key."""
    keys = product.get("keys") or {}
    return keys.get("GTIN14") or product.get("key") or None


def _category(product: dict[str, Any]) -> str | None:
    category = product.get("category")
    if isinstance(category, list):
        return ", ".join(str(c) for c in category) or None
    return category or None


def parse_product(product: dict[str, Any]) -> CandidateProduct | None:
    """Parse one FoodGraph product document.

    Returns None for documents without a catalog key, since nothing downstream
    can persist or select a candidate it cannot identify.
    """
    key = catalog_key(product)
    if not key:
        return None

    return CandidateProduct(
        key=str(key),
        title=product.get("title") or "Unknown",
        brand=product.get("companyBrand") or None,
        size=product.get("measures") or None,
        image_urls=front_image_urls(product),
        retailers=retailers_from_urls(product.get("sourcePdpUrls")),
        category=_category(product),
        manufacturer=product.get("companyManufacturer") or None,
    )


def parse_search_results(data: dict[str, Any]) -> list[CandidateProduct]:
    """Parse a FoodGraph search query response into ranked candidates.

    Raises:
        ValueError: If the response does not carry a results list.
    """
    results = data.get("results")
    if results is None:
        results = []
    if not isinstance(results, list):
        raise ValueError("FoodGraph response 'results' is not a list")

    candidates: list[CandidateProduct] = []
    for product in results:
        if not isinstance(product, dict):
            continue
        candidate = parse_product(product)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
