# ABOUTME: Core data structures for shelf items and catalog candidates.
# ABOUTME: DetectedItem is what we match; CandidateProduct is what the catalog returns.

from dataclasses import dataclass, field

_UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExtractedField:
    """One extracted metadata value with its optional extraction confidence."""

    value: str
    confidence: float | None = None

    @property
    def is_known(self) -> bool:
        """Whether the value carries information (not blank, not 'Unknown')."""
        text = self.value.strip()
        return bool(text) and text.lower() != _UNKNOWN


@dataclass(frozen=True)
class ExtractedMetadata:
    """Noisy metadata read off a shelf crop by the extraction step.

    Every field is optional. Extraction reports "Unknown" for unreadable text,
    so use ``known()`` rather than the raw fields when a real value is needed.
    """

    brand: ExtractedField | None = None
    product_name: ExtractedField | None = None
    size: ExtractedField | None = None
    flavor: ExtractedField | None = None
    category: ExtractedField | None = None

    def known(self, name: str) -> str | None:
        """Return the named field's value if it is present and meaningful."""
        extracted: ExtractedField | None = getattr(self, name)
        if extracted is None or not extracted.is_known:
            return None
        return extracted.value.strip()

    def display(self, name: str) -> str:
        """Return the named field's value, or 'Unknown' for prompts and logs."""
        return self.known(name) or "Unknown"


@dataclass(frozen=True)
class BoundingBox:
    """Normalized [0, 1000] box coordinates of an item within its source image."""

    y0: int
    x0: int
    y1: int
    x1: int


@dataclass(frozen=True)
class DetectedItem:
    """A product found on a shelf image, ready to be matched.

    Created by the detection/extraction steps; read-only to the matching core.
    ``selected_match`` holds the catalog key of a previous resolution, if any.
    """

    id: str
    image_id: str
    index: int
    crop_ref: str
    metadata: ExtractedMetadata
    box: BoundingBox | None = None
    store_name: str | None = None
    selected_match: str | None = None

    @property
    def label(self) -> str:
        """Short human-readable label for progress output."""
        return self.metadata.known("brand") or f"Product #{self.index}"


@dataclass(frozen=True)
class CandidateProduct:
    """An immutable catalog record returned by a candidate source.

    ``key`` is the stable catalog key (a GTIN-like code). ``retailers`` holds
    lowercase retailer tags the product is known to be sold at.
    """

    key: str
    title: str
    brand: str | None = None
    size: str | None = None
    image_urls: tuple[str, ...] = ()
    retailers: frozenset[str] = field(default_factory=frozenset)
    category: str | None = None
    manufacturer: str | None = None

    @property
    def image_url(self) -> str | None:
        """The preferred reference image, if the catalog supplied one."""
        return self.image_urls[0] if self.image_urls else None
