"""URL paths for every kind of generated page.

Paths are site-absolute ("/2024/01/02"); the matching file is the path plus
".html" under the output directory.
"""
import re
from datetime import date

# "https:", "mailto:", ... anything that makes the value an absolute URL
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")

INDEX_PATH = "/index"
ARTICLES_PATH = "/articles"
FEED_FILE = "rss.xml"


def format_year(year: int) -> str:
    return f"/{year:04d}"


def format_month(year: int, month: int) -> str:
    return f"/{year:04d}/{month:02d}"


def format_day(day: date) -> str:
    return f"/{day.year:04d}/{day.month:02d}/{day.day:02d}"


def output_file(path: str) -> str:
    """Relative file name for a page path: "/2024/01" -> "2024/01.html"."""
    return path.lstrip("/") + ".html"


def normalize_slug(url: str) -> str:
    """
    Turn an article's `url` value into a site path like "/about".

    Surrounding whitespace and slashes are dropped. Anything that would
    escape the output directory, point at another site, or produce an
    ambiguous file name raises ValueError.
    """
    value = url.strip()
    if SCHEME_RE.match(value) or value.startswith("//"):
        raise ValueError(f"'{url}' is an absolute URL, expected a relative path")
    if "\\" in value:
        raise ValueError(f"'{url}' contains a backslash")
    if "?" in value or "#" in value:
        raise ValueError(f"'{url}' contains a query or fragment")

    value = value.strip("/")
    if not value:
        raise ValueError("url is empty")

    segments = value.split("/")
    for segment in segments:
        if not segment:
            raise ValueError(f"'{url}' contains an empty path segment")
        if segment in (".", ".."):
            raise ValueError(f"'{url}' contains a relative path segment")
        if segment != segment.strip():
            raise ValueError(f"'{url}' has whitespace around a path segment")

    if value.lower().endswith(".html"):
        raise ValueError(f"'{url}' must not end in .html")

    return "/" + value
