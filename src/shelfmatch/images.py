# ABOUTME: ImageProvider protocol for loading item crops, plus a filesystem implementation.
# ABOUTME: Image storage itself lives elsewhere; the pipeline only reads bytes by reference.

import asyncio
from pathlib import Path
from typing import Protocol, runtime_checkable

from shelfmatch.errors import PipelineFailure


class ImageLoadError(PipelineFailure):
    """Raised when an item's crop image cannot be loaded."""


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol for resolving a crop reference to image bytes."""

    async def load(self, crop_ref: str) -> bytes: ...


class FileImageProvider:
    """Loads crops from local files; relative references resolve against ``base_dir``."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def resolve(self, crop_ref: str) -> Path:
        path = Path(crop_ref).expanduser()
        return path if path.is_absolute() else self._base_dir / path

    async def load(self, crop_ref: str) -> bytes:
        path = self.resolve(crop_ref)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise ImageLoadError(f"Cannot read crop image {path}: {exc}") from exc
