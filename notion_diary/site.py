"""
Assemble the site model from classified, published entries.

This is where every output path is decided. All of them go through one
PathTable, so two things that would land on the same file (two articles
with one slug, two entries for one day, an article named like a year page)
stop the build before anything is written.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from itertools import groupby
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import markdown

from .blocks import wrap_images_with_figures
from .entries import ArticleEntry, DateEntry, Entry
from .errors import DuplicatePathError, IndependentPageError
from .paths import (
    ARTICLES_PATH,
    FEED_FILE,
    INDEX_PATH,
    format_day,
    format_month,
    format_year,
    output_file,
)

logger = logging.getLogger(__name__)

PAGE_SUFFIXES = (".html", ".md")


@dataclass(frozen=True)
class IndependentPage:
    """A page from pages/, wrapped in the layout but never listed."""

    name: str
    path: str
    content: str
    source: Path

    @property
    def title(self) -> str:
        return self.name[:1].upper() + self.name[1:]


@dataclass(frozen=True)
class Asset:
    """A file from public/, copied as-is."""

    source: Path
    relative: str


@dataclass(frozen=True)
class MonthArchive:
    year: int
    month: int
    entries: Tuple[DateEntry, ...]

    @property
    def path(self) -> str:
        return format_month(self.year, self.month)


@dataclass(frozen=True)
class YearArchive:
    year: int
    months: Tuple[MonthArchive, ...]

    @property
    def path(self) -> str:
        return format_year(self.year)

    @property
    def entries(self) -> Tuple[DateEntry, ...]:
        return tuple(e for m in self.months for e in m.entries)


@dataclass(frozen=True)
class SiteModel:
    diary: Tuple[DateEntry, ...]
    articles: Mapping[str, ArticleEntry]
    articles_index: Tuple[ArticleEntry, ...]
    years: Tuple[YearArchive, ...]
    pages: Tuple[IndependentPage, ...]
    assets: Tuple[Asset, ...]
    link_map: Mapping[str, str]

    def neighbours(self, entry: DateEntry):
        """(previous, next) day entries around `entry` in the timeline."""
        position = self.diary.index(entry)
        prev_entry = self.diary[position - 1] if position > 0 else None
        next_entry = self.diary[position + 1] if position + 1 < len(self.diary) else None
        return prev_entry, next_entry

    @property
    def months(self) -> Tuple[MonthArchive, ...]:
        return tuple(m for y in self.years for m in y.months)


# -----------------------
# Paths
# -----------------------

def entry_path(entry: Entry) -> str:
    if isinstance(entry, DateEntry):
        return format_day(entry.date)
    if isinstance(entry, ArticleEntry):
        return entry.url_slug
    raise TypeError(f"not an entry: {entry!r}")


def describe(entry: Entry) -> str:
    if isinstance(entry, DateEntry):
        return f"day entry {entry.row_id} ({entry.name})"
    if isinstance(entry, ArticleEntry):
        return f"article {entry.row_id} ({entry.name})"
    raise TypeError(f"not an entry: {entry!r}")


class PathTable:
    """
    Output files claimed so far, keyed by their path under output/.

    Names are compared case-insensitively: "About.html" and "about.html"
    are the same file on case-insensitive filesystems.
    """

    def __init__(self):
        self._owners = {}

    def claim(self, filename: str, owner: str):
        key = filename.casefold()
        first = self._owners.get(key)
        if first is not None:
            raise DuplicatePathError(filename, first, owner)
        self._owners[key] = owner

    def __contains__(self, filename: str) -> bool:
        return filename.casefold() in self._owners

    def __len__(self) -> int:
        return len(self._owners)


def publish_instant(value) -> Optional[datetime]:
    """Publish date as an aware datetime, so dates and datetimes sort together."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


# -----------------------
# Assembly
# -----------------------

def build_archives(diary) -> Tuple[YearArchive, ...]:
    """Group a chronological diary into years and months."""
    years = []
    for year, in_year in groupby(diary, key=lambda e: e.date.year):
        months = tuple(
            MonthArchive(year=year, month=month, entries=tuple(in_month))
            for month, in_month in groupby(in_year, key=lambda e: e.date.month)
        )
        years.append(YearArchive(year=year, months=months))
    return tuple(years)


def assemble_site(entries, pages=(), assets=(), *, feed: bool = False) -> SiteModel:
    """
    Build the immutable site model.

    `entries` must already be classified and publish-filtered, in fetch
    order. Raises DuplicatePathError when two outputs share a file.
    """
    days = [e for e in entries if isinstance(e, DateEntry)]
    articles = [e for e in entries if isinstance(e, ArticleEntry)]

    # stable: same-day entries keep fetch order (and then collide below)
    diary = tuple(sorted(days, key=lambda e: (e.date, e.order)))
    years = build_archives(diary)

    table = PathTable()
    table.claim(output_file(INDEX_PATH), "diary index")
    table.claim(output_file(ARTICLES_PATH), "articles index")
    if feed:
        table.claim(FEED_FILE, "feed")
    for year in years:
        table.claim(output_file(year.path), f"{year.year} archive")
        for month in year.months:
            table.claim(output_file(month.path), f"{month.year}-{month.month:02d} archive")

    link_map = {}
    for entry in (*diary, *articles):
        path = entry_path(entry)
        table.claim(output_file(path), describe(entry))
        link_map[entry.row_id] = path

    for page in pages:
        table.claim(output_file(page.path), f"independent page {page.source.name}")

    for asset in assets:
        table.claim(asset.relative, f"public asset {asset.relative}")

    by_slug = {a.url_slug: a for a in articles}

    def article_sort_key(article):
        published = publish_instant(article.published)
        return (published is None, published or datetime.min.replace(tzinfo=timezone.utc), article.order)

    articles_index = tuple(sorted(articles, key=article_sort_key))

    logger.debug(f"Assembled {len(diary)} days, {len(articles)} articles, {len(table)} output files")

    return SiteModel(
        diary=diary,
        articles=MappingProxyType(by_slug),
        articles_index=articles_index,
        years=years,
        pages=tuple(pages),
        assets=tuple(assets),
        link_map=MappingProxyType(link_map),
    )


# -----------------------
# Filesystem inputs
# -----------------------

def collect_independent_pages(pages_dir: Path):
    """
    Read pages/*.html and pages/*.md.

    HTML files are used verbatim; Markdown files are converted first. The
    file name without extension becomes the page path and title.
    """
    if not pages_dir.is_dir():
        return []

    pages = []
    for path in sorted(pages_dir.iterdir()):
        if path.name.startswith("."):
            continue  # .DS_Store and friends
        if not path.is_file():
            raise IndependentPageError(f"Pages directory must only contain page files but found {path}")
        if path.suffix not in PAGE_SUFFIXES:
            raise IndependentPageError(f"Unsupported page type {path.name}, expected .html or .md")

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as error:
            raise IndependentPageError(f"Failed to read {path}: {error}") from error

        if path.suffix == ".md":
            text = wrap_images_with_figures(markdown.markdown(text))

        pages.append(IndependentPage(name=path.stem, path=f"/{path.stem}", content=text, source=path))

    return pages


def collect_assets(public_dir: Path):
    """List every file under public/, sorted by relative path."""
    if not public_dir.is_dir():
        return []

    return [
        Asset(source=path, relative=path.relative_to(public_dir).as_posix())
        for path in sorted(public_dir.rglob("*"))
        if path.is_file()
    ]
