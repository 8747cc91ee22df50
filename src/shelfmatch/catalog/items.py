# ABOUTME: Loads detected shelf items from the JSON batch file produced by the extraction step.
# ABOUTME: Accepts plain strings or {value, confidence} objects for each metadata field.

import json
from pathlib import Path
from typing import Any

from shelfmatch.catalog.types import BoundingBox, DetectedItem, ExtractedField, ExtractedMetadata

_METADATA_FIELDS = {
    "brand": ("brand",),
    "product_name": ("product_name", "productName"),
    "size": ("size",),
    "flavor": ("flavor",),
    "category": ("category",),
}


class ItemsFileError(ValueError):
    """Raised when a batch file cannot be read or has the wrong shape."""


def _parse_field(raw: Any, confidence: Any = None) -> ExtractedField | None:
    if raw is None:
        return None
    if isinstance(raw, dict):
        value = raw.get("value")
        if value is None:
            return None
        return ExtractedField(value=str(value), confidence=raw.get("confidence"))
    return ExtractedField(value=str(raw), confidence=confidence)


def parse_metadata(data: dict[str, Any]) -> ExtractedMetadata:
    """Build ExtractedMetadata from a dict of field values.

    A field may be a plain string (with an optional sibling ``<field>_confidence``
    or ``<field>Confidence``) or an object ``{"value": ..., "confidence": ...}``.
    """
    fields: dict[str, ExtractedField | None] = {}
    for name, keys in _METADATA_FIELDS.items():
        raw = next((data[k] for k in keys if k in data), None)
        confidence_keys = [f"{k}{suffix}" for k in keys for suffix in ("_confidence", "Confidence")]
        confidence = next((data[k] for k in confidence_keys if k in data), None)
        fields[name] = _parse_field(raw, confidence)
    return ExtractedMetadata(**fields)


def _parse_box(raw: Any) -> BoundingBox | None:
    """Accept {"y0", "x0", "y1", "x1"} or a [y0, x0, y1, x1] list."""
    if raw is None:
        return None
    try:
        if isinstance(raw, dict):
            values = [raw["y0"], raw["x0"], raw["y1"], raw["x1"]]
        else:
            values = list(raw)
        y0, x0, y1, x1 = (int(v) for v in values)
    except (KeyError, TypeError, ValueError) as exc:
        raise ItemsFileError(f"Invalid bounding box: {raw!r}") from exc
    return BoundingBox(y0=y0, x0=x0, y1=y1, x1=x1)


def parse_item(data: dict[str, Any], position: int) -> DetectedItem:
    """Build a DetectedItem from one entry of a batch file.

    ``id`` and ``crop`` (the crop image reference) are required. ``index``
    defaults to the entry's 1-based position in the file.
    """
    item_id = data.get("id")
    crop_ref = data.get("crop") or data.get("crop_ref")
    if not item_id or not crop_ref:
        raise ItemsFileError(f"Item #{position} needs both 'id' and 'crop'")

    metadata_raw = data.get("metadata", data)
    if not isinstance(metadata_raw, dict):
        raise ItemsFileError(f"Item {item_id}: 'metadata' must be an object")

    try:
        index = int(data.get("index", position))
    except (TypeError, ValueError) as exc:
        raise ItemsFileError(f"Item {item_id}: invalid index {data.get('index')!r}") from exc

    return DetectedItem(
        id=str(item_id),
        image_id=str(data.get("image_id", "")),
        index=index,
        crop_ref=str(crop_ref),
        metadata=parse_metadata(metadata_raw),
        box=_parse_box(data.get("box")),
        store_name=data.get("store_name"),
        selected_match=data.get("selected_match"),
    )


def load_items(path: Path) -> list[DetectedItem]:
    """Read a batch file: a JSON list of items, or an object with an ``items`` list."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ItemsFileError(f"Cannot read {path}: {exc}") from exc

    entries = data.get("items") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ItemsFileError(f"{path} must contain a list of items")

    items = []
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ItemsFileError(f"Item #{position} must be an object")
        items.append(parse_item(entry, position))
    return items
