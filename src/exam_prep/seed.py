"""Seed content: the store catalog and the sample flashcard deck."""
import json
from pathlib import Path

from exam_prep.models import StoreItem, from_dict

CONTENT_DIR = Path(__file__).parent / "content"


def _read_content(name: str) -> dict:
    return json.loads((CONTENT_DIR / name).read_text(encoding="utf-8"))


def load_store_catalog(created_at: str = "") -> list[StoreItem]:
    """Build the default cosmetic catalog from store_items.json."""
    data = _read_content("store_items.json")
    return [from_dict(StoreItem, {**item, "created_at": created_at}) for item in data["items"]]


def load_sample_flashcards() -> list[dict]:
    """Front/back pairs for the sample deck."""
    return _read_content("sample_flashcards.json")["cards"]
