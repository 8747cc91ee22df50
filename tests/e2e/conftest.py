# ABOUTME: Shared fixtures for shelfmatch CLI end-to-end tests.
# ABOUTME: Writes a batch file with crop images and isolates the environment.

import json
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty directory with no SHELFMATCH_ variables set."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "SHELFMATCH_DB_PATH",
        "SHELFMATCH_GEMINI_API_KEY",
        "SHELFMATCH_FOODGRAPH_EMAIL",
        "SHELFMATCH_FOODGRAPH_PASSWORD",
        "SHELFMATCH_DEFAULT_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def items_file(tmp_path: Path) -> Path:
    """A three-item batch file with crop images beside it."""
    batch_dir = tmp_path / "batch"
    crops = batch_dir / "crops"
    crops.mkdir(parents=True)
    entries = [
        ("item-1", "Tru Fru", "Target Store #12"),
        ("item-2", "Siete", None),
        ("item-3", "Chobani", None),
    ]
    items = []
    for item_id, brand, store in entries:
        (crops / f"{item_id}.jpg").write_bytes(b"\xff\xd8\xff-crop")
        items.append(
            {
                "id": item_id,
                "crop": f"crops/{item_id}.jpg",
                "store_name": store,
                "metadata": {
                    "brand": {"value": brand, "confidence": 0.9},
                    "productName": "Frozen Snack",
                    "size": "8 oz",
                },
            }
        )
    path = batch_dir / "items.json"
    path.write_text(json.dumps({"items": items}), encoding="utf-8")
    return path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path for the CLI's result database."""
    return tmp_path / "results.db"
