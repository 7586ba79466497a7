"""Tests for URL path helpers."""

from datetime import date

import pytest

from notion_diary.paths import format_day, format_month, format_year, normalize_slug, output_file


def test_format_helpers() -> None:
    assert format_year(2021) == "/2021"
    assert format_month(2021, 3) == "/2021/03"
    assert format_day(date(2021, 11, 7)) == "/2021/11/07"


def test_output_file() -> None:
    assert output_file("/2021/11/07") == "2021/11/07.html"
    assert output_file("/about") == "about.html"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("about", "/about"),
        ("  about  ", "/about"),
        ("/about/", "/about"),
        ("projects/diary", "/projects/diary"),
        ("Now", "/Now"),
    ],
)
def test_normalize_slug(url: str, expected: str) -> None:
    assert normalize_slug(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "",
        "/",
        "http://example.com",
        "mailto:me@example.com",
        "//example.com/x",
        "../up",
        "a/./b",
        "a//b",
        "a\\b",
        "about?x=1",
        "about#top",
        "about.html",
    ],
)
def test_normalize_slug_rejects(url: str) -> None:
    with pytest.raises(ValueError):
        normalize_slug(url)
