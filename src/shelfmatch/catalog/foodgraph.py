# ABOUTME: FoodGraph catalog candidate source implementation.
# ABOUTME: Authenticates, runs fuzzy title searches, and returns parsed candidates.

import logging
import time

from shelfmatch.catalog.foodgraph_parser import parse_search_results
from shelfmatch.catalog.types import CandidateProduct, ExtractedMetadata
from shelfmatch.errors import SearchFailure
from shelfmatch.http import HttpClient, HttpFetchError

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.foodgraph.com"
_DEFAULT_LIMIT = 100
# Tokens are issued for 24h; refresh an hour early.
_TOKEN_TTL_SECONDS = 23 * 60 * 60


def build_search_query(metadata: ExtractedMetadata) -> str:
    """Combine brand, product name, flavor and size into one search string.

    Falls back to the brand alone; returns an empty string when nothing
    usable was extracted.
    """
    parts = [
        metadata.known("brand"),
        metadata.known("product_name"),
        metadata.known("flavor"),
        metadata.known("size"),
    ]
    return " ".join(p for p in parts if p).strip()


class FoodGraphSource:
    """Candidate source backed by the FoodGraph catalog API.

    Uses a dependency-injected HttpClient for testability. The bearer token is
    cached on the instance and refreshed when it nears expiry.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        email: str | None,
        password: str | None,
        base_url: str = _DEFAULT_BASE_URL,
        updated_from: str = "2025-07-01T00:00:00Z",
        default_limit: int = _DEFAULT_LIMIT,
    ) -> None:
        self._http = http_client
        self._email = email
        self._password = password
        self._base_url = base_url.rstrip("/")
        self._updated_from = updated_from
        self._default_limit = default_limit
        self._token: str | None = None
        self._token_expiry: float = 0.0

    @property
    def name(self) -> str:
        return "foodgraph"

    async def search(
        self, query: str, limit: int | None = None
    ) -> list[CandidateProduct]:
        """Search the catalog by free text with fuzzy title matching.

        Returns at most ``limit`` candidates (default 100) in FoodGraph's
        ranking order. An empty query or zero hits returns an empty list.

        Raises:
            SearchFailure: On authentication, transport, or response-shape errors.
        """
        query = query.strip()
        if not query:
            return []

        token = await self._authenticate()
        body = {
            "updatedAtFrom": self._updated_from,
            "productFilter": "CORE_FIELDS",
            "search": query,
            "searchIn": {"or": ["title"]},
            "fuzzyMatch": True,
        }
        try:
            data = await self._http.post_json(
                f"{self._base_url}/v1/catalog/products/search/query",
                body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except HttpFetchError as exc:
            raise SearchFailure(f"FoodGraph search failed for {query!r}: {exc}") from exc

        try:
            candidates = parse_search_results(data)
        except ValueError as exc:
            raise SearchFailure(f"Malformed FoodGraph response for {query!r}: {exc}") from exc

        cap = limit if limit is not None else self._default_limit
        logger.info("FoodGraph returned %d candidates for %r", len(candidates), query)
        return candidates[:cap]

    async def _authenticate(self) -> str:
        """Return a cached bearer token, requesting a new one when expired."""
        if self._token and time.monotonic() < self._token_expiry:
            return self._token

        if not self._email or not self._password:
            raise SearchFailure("FoodGraph credentials not configured")

        try:
            data = await self._http.post_json(
                f"{self._base_url}/v1/auth/token",
                {
                    "email": self._email,
                    "password": self._password,
                    "includeRefreshToken": True,
                },
            )
        except HttpFetchError as exc:
            raise SearchFailure(f"FoodGraph authentication failed: {exc}") from exc

        token = data.get("accessToken")
        if not token:
            raise SearchFailure("FoodGraph authentication response had no accessToken")

        self._token = token
        self._token_expiry = time.monotonic() + _TOKEN_TTL_SECONDS
        return token
