"""Shared fixtures and row builders."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from notion_diary.build import BuildContext
from notion_diary.config import Config
from notion_diary.entries import RawRow

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def rich_text(text: str, **annotations) -> dict:
    item = {
        "type": "text",
        "text": {"content": text, "link": None},
        "plain_text": text,
        "href": None,
    }
    if annotations:
        item["annotations"] = annotations
    return item


def date_property(start):
    return {"id": "d", "type": "date", "date": {"start": start, "end": None} if start else None}


def notion_row(
    row_id: str,
    name: str,
    *,
    date=None,
    url=None,
    description: str = "",
    published=None,
    children=(),
) -> RawRow:
    """A row shaped like a Notion database query result."""
    return RawRow(
        id=row_id,
        properties={
            "name": {"id": "title", "type": "title", "title": [rich_text(name)] if name else []},
            "date": date_property(date),
            "url": {"id": "u", "type": "rich_text", "rich_text": [rich_text(url)] if url else []},
            "description": {
                "id": "desc",
                "type": "rich_text",
                "rich_text": [rich_text(description)] if description else [],
            },
            "published": date_property(published),
        },
        children=tuple(children),
    )


def paragraph(text: str, block_id: str = "b1") -> dict:
    return {
        "id": block_id,
        "type": "paragraph",
        "has_children": False,
        "paragraph": {"rich_text": [rich_text(text)]},
    }


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "site"
    path.mkdir()
    return path


@pytest.fixture
def ctx(root: Path) -> BuildContext:
    return BuildContext(config=Config(), now=NOW, root=root, output_dir=root / "output")


@pytest.fixture
def scenario_rows() -> list[RawRow]:
    return [
        notion_row("row-1", "Day 1", date="2024-01-01", description="storm"),
        notion_row("row-2", "About", url="about", description="bio"),
        notion_row("row-3", "Day 2", date="2024-01-02", published="2099-01-01"),
    ]
