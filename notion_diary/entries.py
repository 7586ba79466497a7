"""
Turn raw Notion rows into diary entries.

A row becomes exactly one of:

  DateEntry     - a diary day, identified by its `date`
  ArticleEntry  - a standalone page, identified by its `url`

Rows that cannot be classified raise a ClassificationError. classify_rows()
collects those instead of stopping, so one bad row only costs that row.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, Union

from .errors import (
    BothDateAndUrlPresent,
    ClassificationError,
    InvalidDateFormat,
    InvalidDescription,
    InvalidName,
    InvalidUrlFormat,
    MissingName,
    NeitherDateNorUrlPresent,
)
from .paths import normalize_slug

logger = logging.getLogger(__name__)

# Property names are matched exactly, case included.
NAME = "name"
DATE = "date"
URL = "url"
DESCRIPTION = "description"
PUBLISHED = "published"

PublishDate = Union[date, datetime]


@dataclass(frozen=True)
class RawRow:
    """One database row as returned by Notion."""

    id: str
    properties: dict
    children: tuple = ()


@dataclass(frozen=True)
class DateEntry:
    row_id: str
    name: str
    date: date
    description: str = ""
    published: Optional[PublishDate] = None
    children: tuple = field(default=(), compare=False)
    order: int = 0


@dataclass(frozen=True)
class ArticleEntry:
    row_id: str
    name: str
    url_slug: str
    description: str = ""
    published: Optional[PublishDate] = None
    children: tuple = field(default=(), compare=False)
    order: int = 0


Entry = Union[DateEntry, ArticleEntry]


# -----------------------
# Property values
# -----------------------

def plain_text(value) -> str:
    """
    Flatten a property value to text.

    Accepts plain strings, Notion rich text arrays, and typed property
    objects such as {"type": "title", "title": [...]}.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "".join(plain_text(item) for item in value)
    if isinstance(value, dict):
        if "plain_text" in value:
            return plain_text(value["plain_text"])
        kind = value.get("type")
        if kind in value:
            return plain_text(value[kind])
        if "content" in value:
            return plain_text(value["content"])
        return ""
    raise TypeError(f"cannot read text from {type(value).__name__}")


def parse_date_value(value) -> Optional[PublishDate]:
    """
    Read a date property. Returns a date for "YYYY-MM-DD" values, an aware
    datetime for values with a time of day (naive ones are taken as UTC),
    or None when the property is empty. Raises ValueError otherwise.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        # {"type": "date", "date": {...}} or the inner {"start": ...}
        if "start" not in value:
            return parse_date_value(value.get("date"))
        return parse_date_value(value["start"])
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if len(text) == 10:
            return date.fromisoformat(text)
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"unsupported date value {value!r}")


# -----------------------
# Classification
# -----------------------

def _text_property(raw: RawRow, key: str, error_type) -> str:
    try:
        return plain_text(raw.properties.get(key)).strip()
    except TypeError as error:
        raise error_type(raw.id, f"{key}: {error}") from error


def classify(raw: RawRow, order: int = 0) -> Entry:
    """Validate one row and build the matching entry."""
    props = raw.properties

    name = _text_property(raw, NAME, InvalidName)
    if not name:
        raise MissingName(raw.id)

    try:
        day = parse_date_value(props.get(DATE))
    except (ValueError, TypeError) as error:
        raise InvalidDateFormat(raw.id, f"date: {error}") from error
    if isinstance(day, datetime):
        raise InvalidDateFormat(raw.id, f"diary dates must not contain a time, got {day.isoformat()}")

    try:
        published = parse_date_value(props.get(PUBLISHED))
    except (ValueError, TypeError) as error:
        raise InvalidDateFormat(raw.id, f"published: {error}") from error

    url = _text_property(raw, URL, InvalidUrlFormat) or None
    description = _text_property(raw, DESCRIPTION, InvalidDescription)

    if day is not None and url is not None:
        raise BothDateAndUrlPresent(raw.id, f"date {day.isoformat()}, url '{url}'")
    if day is None and url is None:
        raise NeitherDateNorUrlPresent(raw.id)

    if day is not None:
        return DateEntry(
            row_id=raw.id,
            name=name,
            date=day,
            description=description,
            published=published,
            children=tuple(raw.children),
            order=order,
        )

    try:
        slug = normalize_slug(url)
    except ValueError as error:
        raise InvalidUrlFormat(raw.id, str(error)) from error

    return ArticleEntry(
        row_id=raw.id,
        name=name,
        url_slug=slug,
        description=description,
        published=published,
        children=tuple(raw.children),
        order=order,
    )


def classify_rows(rows):
    """
    Classify every row, in fetch order.

    Returns (entries, diagnostics). A row that fails lands in diagnostics
    and is left out of entries; the rest carry on.
    """
    entries = []
    diagnostics = []

    for order, raw in enumerate(rows):
        try:
            entries.append(classify(raw, order))
        except ClassificationError as error:
            logger.warning(f"Skipping {error}")
            diagnostics.append(error)

    return entries, diagnostics


# -----------------------
# Publish gate
# -----------------------

def is_published(entry: Entry, now: datetime) -> bool:
    """True unless the entry has a publish date later than `now`."""
    published = entry.published
    if published is None:
        return True
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if isinstance(published, datetime):
        return published <= now
    return published <= now.astimezone(timezone.utc).date()


def filter_published(entries, now: datetime):
    """Drop entries scheduled for later. Returns (kept, excluded_count)."""
    kept = [e for e in entries if is_published(e, now)]
    excluded = len(entries) - len(kept)
    if excluded:
        logger.info(f"Holding back {excluded} entries scheduled after {now:%Y-%m-%d}")
    return kept, excluded
