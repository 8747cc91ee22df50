# ABOUTME: Unit tests for loading detected items from a batch file.
# ABOUTME: Covers metadata shapes, bounding boxes, defaults, and malformed files.

import json
from pathlib import Path

import pytest

from shelfmatch.catalog.items import ItemsFileError, load_items, parse_item, parse_metadata


def _write(tmp_path: Path, data: object) -> Path:
    path = tmp_path / "items.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestParseMetadata:
    """Tests for parse_metadata()."""

    def test_plain_strings_with_confidence(self) -> None:
        """Plain values pick up sibling confidence keys in either style."""
        metadata = parse_metadata(
            {"brand": "Tru Fru", "brand_confidence": 0.9, "size": "8 oz", "sizeConfidence": 0.7}
        )
        assert metadata.brand.value == "Tru Fru"
        assert metadata.brand.confidence == 0.9
        assert metadata.size.confidence == 0.7

    def test_value_objects(self) -> None:
        """Fields may be {value, confidence} objects."""
        metadata = parse_metadata({"flavor": {"value": "Strawberry", "confidence": 0.8}})
        assert metadata.flavor.value == "Strawberry"
        assert metadata.flavor.confidence == 0.8

    def test_camel_case_product_name(self) -> None:
        """productName is accepted for product_name."""
        assert parse_metadata({"productName": "Frozen Fruit"}).known("product_name") == (
            "Frozen Fruit"
        )

    def test_missing_fields_are_none(self) -> None:
        """Absent fields and null values stay None."""
        metadata = parse_metadata({"brand": None, "size": {"value": None}})
        assert metadata.brand is None
        assert metadata.size is None
        assert metadata.category is None


class TestParseItem:
    """Tests for parse_item()."""

    def test_nested_metadata(self) -> None:
        """Metadata is read from a nested object."""
        item = parse_item(
            {
                "id": "item-1",
                "crop": "crops/1.jpg",
                "image_id": "shelf-7",
                "store_name": "Target Store #12",
                "metadata": {"brand": "Tru Fru"},
                "box": [10, 20, 300, 400],
            },
            position=1,
        )
        assert item.id == "item-1"
        assert item.crop_ref == "crops/1.jpg"
        assert item.image_id == "shelf-7"
        assert item.store_name == "Target Store #12"
        assert item.metadata.known("brand") == "Tru Fru"
        assert (item.box.y0, item.box.x0, item.box.y1, item.box.x1) == (10, 20, 300, 400)

    def test_flat_metadata_and_default_index(self) -> None:
        """Metadata fields may sit on the item itself; index defaults to position."""
        item = parse_item({"id": 5, "crop_ref": "c.jpg", "brand": "Tru Fru"}, position=3)
        assert item.id == "5"
        assert item.index == 3
        assert item.metadata.known("brand") == "Tru Fru"
        assert item.box is None

    def test_box_object(self) -> None:
        """Boxes may be given as an object."""
        item = parse_item(
            {"id": "a", "crop": "c", "box": {"y0": 1, "x0": 2, "y1": 3, "x1": 4}}, position=1
        )
        assert item.box.x1 == 4

    @pytest.mark.parametrize("box", [[1, 2, 3], {"y0": 1}, ["a", "b", "c", "d"]])
    def test_invalid_box(self, box: object) -> None:
        """Malformed boxes are rejected."""
        with pytest.raises(ItemsFileError, match="bounding box"):
            parse_item({"id": "a", "crop": "c", "box": box}, position=1)

    @pytest.mark.parametrize("data", [{"crop": "c"}, {"id": "a"}])
    def test_required_fields(self, data: dict) -> None:
        """id and crop are required."""
        with pytest.raises(ItemsFileError, match="needs both"):
            parse_item(data, position=2)

    def test_metadata_must_be_object(self) -> None:
        """A non-object metadata value is rejected."""
        with pytest.raises(ItemsFileError, match="must be an object"):
            parse_item({"id": "a", "crop": "c", "metadata": "Tru Fru"}, position=1)

    @pytest.mark.parametrize("index", ["third", [3], None])
    def test_invalid_index(self, index: object) -> None:
        """A non-numeric index is reported as a batch file error."""
        with pytest.raises(ItemsFileError, match="invalid index"):
            parse_item({"id": "a", "crop": "c", "index": index}, position=1)


class TestLoadItems:
    """Tests for load_items()."""

    def test_list_file(self, tmp_path: Path) -> None:
        """A top-level list is read in order."""
        path = _write(tmp_path, [{"id": "a", "crop": "a.jpg"}, {"id": "b", "crop": "b.jpg"}])
        assert [i.id for i in load_items(path)] == ["a", "b"]

    def test_object_file(self, tmp_path: Path) -> None:
        """An object with an items list is accepted."""
        path = _write(tmp_path, {"items": [{"id": "a", "crop": "a.jpg"}]})
        assert len(load_items(path)) == 1

    def test_empty_list(self, tmp_path: Path) -> None:
        """An empty batch is valid."""
        assert load_items(_write(tmp_path, [])) == []

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Unparsable files raise ItemsFileError."""
        path = tmp_path / "items.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ItemsFileError, match="Cannot read"):
            load_items(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        """A file without an item list is rejected."""
        with pytest.raises(ItemsFileError, match="list of items"):
            load_items(_write(tmp_path, {"things": []}))

    def test_non_object_entry(self, tmp_path: Path) -> None:
        """Each entry must be an object."""
        with pytest.raises(ItemsFileError, match="#1 must be an object"):
            load_items(_write(tmp_path, ["item-1"]))
