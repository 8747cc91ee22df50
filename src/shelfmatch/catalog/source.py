# ABOUTME: CandidateSource protocol defining the contract for catalog search services.
# ABOUTME: Any catalog search backend (FoodGraph, a local index, etc.) implements this.

from typing import Protocol, runtime_checkable

from shelfmatch.catalog.types import CandidateProduct


@runtime_checkable
class CandidateSource(Protocol):
    """Protocol for catalog search services.

    Implementations return candidates in the source's own ranking order and
    must return an empty list, not raise, when nothing matches. Transport or
    response-shape problems raise SearchFailure.
    """

    @property
    def name(self) -> str: ...

    async def search(
        self, query: str, limit: int | None = None
    ) -> list[CandidateProduct]: ...
