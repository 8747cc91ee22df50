# ABOUTME: Canned FoodGraph API responses for unit and integration tests.
# ABOUTME: Mirrors the shape of /v1/auth/token and /v1/catalog/products/search/query replies.

AUTH_RESPONSE = {
    "accessToken": "test-token-123",
    "refreshToken": "refresh-456",
    "expiresIn": 86400,
}

STRAWBERRY_PRODUCT = {
    "key": "fg-001",
    "keys": {"GTIN14": "00850000429017"},
    "title": "Tru Fru Frozen Fruit Strawberries Dipped in White & Milk Chocolate",
    "companyBrand": "Tru Fru",
    "companyManufacturer": "Tru Fru LLC",
    "measures": "8 oz",
    "category": ["Frozen", "Desserts"],
    "images": [
        {"type": "BACK", "urls": {"desktop": "https://img.example.com/001-back.jpg"}},
        {
            "type": "FRONT",
            "urls": {
                "desktop": "https://img.example.com/001-front.jpg",
                "mobile": "https://img.example.com/001-front-m.jpg",
            },
        },
    ],
    "sourcePdpUrls": [
        "https://www.target.com/p/tru-fru-strawberries/-/A-123",
        "https://www.walmart.com/ip/456",
    ],
}

RASPBERRY_PRODUCT = {
    "key": "fg-002",
    "keys": {"GTIN14": "00850000429024"},
    "title": "Tru Fru Frozen Fruit Raspberries Dipped in Dark Chocolate",
    "companyBrand": "Tru Fru",
    "measures": "8 oz",
    "category": "Frozen",
    "images": [
        {"type": "FRONT", "urls": {"mobile": "https://img.example.com/002-front-m.jpg"}},
    ],
    "sourcePdpUrls": ["https://www.kroger.com/p/789"],
}

NO_KEY_PRODUCT = {
    "title": "Mystery Product",
    "companyBrand": "Nobody",
}

SEARCH_RESPONSE = {
    "results": [STRAWBERRY_PRODUCT, RASPBERRY_PRODUCT, NO_KEY_PRODUCT],
    "totalResults": 3,
}

SEARCH_RESPONSE_EMPTY = {"results": [], "totalResults": 0}

SEARCH_RESPONSE_MALFORMED = {"results": {"unexpected": "object"}}
