# ABOUTME: Retailer tag extraction from store names and product-page URLs.
# ABOUTME: Produces the lowercase retailer tags compared by the pre-filter.

# Ordered: longer names that contain shorter ones must come first.
KNOWN_RETAILERS: tuple[str, ...] = (
    "target",
    "walmart",
    "walgreens",
    "cvs",
    "kroger",
    "safeway",
    "albertsons",
    "publix",
    "whole foods",
    "trader joe",
    "costco",
    "sam's club",
    "aldi",
    "lidl",
    "food lion",
    "giant",
    "stop & shop",
)

# Domain fragment -> retailer tag.
_RETAILER_DOMAINS: dict[str, str] = {
    "walmart.com": "walmart",
    "target.com": "target",
    "walgreens.com": "walgreens",
    "cvs.com": "cvs",
    "kroger.com": "kroger",
    "safeway.com": "safeway",
    "albertsons.com": "albertsons",
    "publix.com": "publix",
    "wholefoodsmarket.com": "whole foods",
    "traderjoes.com": "trader joe",
    "costco.com": "costco",
    "samsclub.com": "sam's club",
    "aldi.": "aldi",
    "lidl.": "lidl",
    "foodlion.com": "food lion",
    "giantfood.com": "giant",
    "stopandshop.com": "stop & shop",
}


def retailer_from_store_name(store_name: str | None) -> str | None:
    """Extract a retailer tag from a free-text store name.

    "Target Store #1234" -> "target". Unknown chains fall back to the first
    word ("Meijer Store" -> "meijer").
    """
    if not store_name:
        return None
    normalized = store_name.strip().lower()
    if not normalized:
        return None
    for retailer in KNOWN_RETAILERS:
        if retailer in normalized:
            return retailer
    return normalized.split()[0]


def retailers_from_urls(urls: list[str] | None) -> frozenset[str]:
    """Collect retailer tags from product-page URLs by domain."""
    if not urls:
        return frozenset()
    found: set[str] = set()
    for url in urls:
        lowered = url.lower()
        for domain, retailer in _RETAILER_DOMAINS.items():
            if domain in lowered:
                found.add(retailer)
    return frozenset(found)
