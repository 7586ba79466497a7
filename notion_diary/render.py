"""
Page templates.

Every page is render_page(layout, content, meta): the shared layout
(partials/head.html, header.html, footer.html) around a content fragment,
with <head> metadata from PageMeta. Rendering is a pure function of its
inputs, so an unchanged site model renders to identical bytes.
"""
import calendar
import html
from dataclasses import dataclass
from datetime import date, timedelta
from email.utils import formatdate
from pathlib import Path
from typing import Optional

from .blocks import render_body
from .config import Config
from .entries import ArticleEntry, DateEntry
from .errors import ConfigError
from .paths import ARTICLES_PATH, FEED_FILE, INDEX_PATH, output_file
from .site import SiteModel, entry_path, publish_instant

PARTIALS = ("head.html", "header.html", "footer.html")


@dataclass(frozen=True)
class Layout:
    head: str = ""
    header: str = ""
    footer: str = ""


@dataclass(frozen=True)
class PageMeta:
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    image: Optional[str] = None
    lang: str = "en"
    locale: str = "en_US"
    twitter_site: Optional[str] = None
    twitter_creator: Optional[str] = None


def load_layout(partials_dir: Path) -> Layout:
    """Read the layout partials; a missing partial is just empty."""
    parts = []
    for filename in PARTIALS:
        path = partials_dir / filename
        if not path.exists():
            parts.append("")
            continue
        try:
            parts.append(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as error:
            raise ConfigError(f"Failed to read partial file {path}: {error}") from error
    return Layout(*parts)


def page_meta(config: Config, title: str, path: str, description: Optional[str] = None,
              image: Optional[str] = None) -> PageMeta:
    return PageMeta(
        title=title,
        description=description or None,
        url=config.absolute_url(path),
        image=image,
        lang=config.lang,
        locale=config.locale,
        twitter_site=config.twitter_site,
        twitter_creator=config.twitter_creator,
    )


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def render_page(layout: Layout, content: str, meta: PageMeta) -> str:
    head_meta = []
    if meta.description:
        head_meta.append(f'<meta name="description" content="{_attr(meta.description)}">')
    head_meta.append(f'<meta property="og:title" content="{_attr(meta.title)}">')
    if meta.description:
        head_meta.append(f'<meta property="og:description" content="{_attr(meta.description)}">')
    head_meta.append(f'<meta property="og:locale" content="{_attr(meta.locale)}">')
    if meta.image:
        head_meta.append(f'<meta property="og:image" content="{_attr(meta.image)}">')
        head_meta.append('<meta name="twitter:card" content="summary_large_image">')
    if meta.url:
        head_meta.append(f'<meta property="og:url" content="{_attr(meta.url)}">')
    if meta.twitter_site:
        head_meta.append(f'<meta name="twitter:site" content="{_attr(meta.twitter_site)}">')
    if meta.twitter_creator:
        head_meta.append(f'<meta name="twitter:creator" content="{_attr(meta.twitter_creator)}">')
    head_meta_html = "\n  ".join(head_meta)

    return f"""<!DOCTYPE html>
<html lang="{_attr(meta.lang)}">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{html.escape(meta.title)}</title>
  {head_meta_html}
  {layout.head}
</head>
<body>
<header>
  {layout.header}
</header>
<main>
{content}
</main>
<footer>
  {layout.footer}
</footer>
</body>
</html>
"""


# -----------------------
# Fragments
# -----------------------

def render_time(day: date) -> str:
    """<time> for a date, e.g. "November 07, 2021"."""
    readable = f"{calendar.month_name[day.month]} {day.day:02d}, {day.year}"
    return f'<p><time datetime="{day.isoformat()}">{readable}</time></p>'


def display_date(entry) -> Optional[date]:
    """The date shown on an entry: its diary day, else its publish date."""
    if isinstance(entry, DateEntry):
        return entry.date
    if isinstance(entry, ArticleEntry):
        published = publish_instant(entry.published)
        return published.date() if published else None
    raise TypeError(f"not an entry: {entry!r}")


def entry_body(entry, link_map) -> str:
    """The page content, or the description when the page has no blocks."""
    if entry.children:
        return render_body(entry.children, link_map)
    if entry.description:
        return f"<p>{html.escape(entry.description)}</p>"
    return ""


def render_entry(entry, link_map) -> str:
    """One entry as a full <article>."""
    shown = display_date(entry)
    time_html = render_time(shown) if shown else ""
    return f"""<article>
  <header>
    <h1>{html.escape(entry.name)}</h1>
    {time_html}
  </header>
  {entry_body(entry, link_map)}
</article>"""


def render_summary(entry, heading: str = "h3") -> str:
    """One entry as a linked card for index pages."""
    shown = display_date(entry)
    time_html = render_time(shown) if shown else ""
    return f"""<article>
  <header>
    <{heading}><a href="{_attr(entry_path(entry))}">{html.escape(entry.name)}</a></{heading}>
    {time_html}
  </header>
  <p>{html.escape(entry.description)}</p>
</article>"""


def render_paging_links(entry: DateEntry, prev_entry, next_entry) -> str:
    if prev_entry is None and next_entry is None:
        return ""

    links = []
    if prev_entry is not None:
        label = "Yesterday:" if prev_entry.date + timedelta(days=1) == entry.date else "Previously:"
        links.append((prev_entry, label))
    if next_entry is not None:
        label = "Tomorrow:" if next_entry.date - timedelta(days=1) == entry.date else "Next up:"
        links.append((next_entry, label))

    cards = "\n".join(
        f"""  <a href="{_attr(entry_path(other))}">
    <article>
      <p>{label}</p>
      <header>
        <h3>{html.escape(other.name)}</h3>
        {render_time(other.date)}
      </header>
    </article>
  </a>"""
        for other, label in links
    )
    return f'<nav class="paging-links">\n{cards}\n</nav>'


# -----------------------
# Page renderers
# -----------------------

def render_day_page(site: SiteModel, entry: DateEntry, config: Config, layout: Layout) -> str:
    prev_entry, next_entry = site.neighbours(entry)
    content = render_entry(entry, site.link_map) + "\n" + render_paging_links(entry, prev_entry, next_entry)
    meta = page_meta(config, config.page_title(entry.name), entry_path(entry), entry.description)
    return render_page(layout, content, meta)


def render_article_page(site: SiteModel, article: ArticleEntry, config: Config, layout: Layout) -> str:
    meta = page_meta(config, config.page_title(article.name), entry_path(article), article.description)
    return render_page(layout, render_entry(article, site.link_map), meta)


def render_archive_page(site: SiteModel, title: str, path: str, entries, config: Config,
                        layout: Layout) -> str:
    """A year or month page: every entry of the period in full."""
    content = "\n".join(render_entry(e, site.link_map) for e in entries)
    return render_page(layout, content, page_meta(config, config.page_title(title), path))


def render_diary_index(site: SiteModel, config: Config, layout: Layout) -> str:
    """All days, chronologically, in year and month sections."""
    sections = []
    for year in site.years:
        months = []
        for month in year.months:
            cards = "\n".join(render_summary(e) for e in month.entries)
            months.append(f"""<section>
  <h2><a href="{month.path}">{calendar.month_name[month.month]}</a></h2>
{cards}
</section>""")
        months_html = "\n".join(months)
        sections.append(f"""<section>
  <h1><a href="{year.path}">{year.year}</a></h1>
{months_html}
</section>""")

    meta = page_meta(config, config.name or "Diary", "/", config.description, config.cover)
    return render_page(layout, "\n".join(sections), meta)


def render_articles_index(site: SiteModel, config: Config, layout: Layout) -> str:
    content = "\n".join(render_summary(a) for a in site.articles_index)
    meta = page_meta(config, config.page_title("Articles"), ARTICLES_PATH)
    return render_page(layout, content, meta)


def render_independent_page(page, config: Config, layout: Layout) -> str:
    meta = page_meta(config, config.page_title(page.title), page.path)
    return render_page(layout, page.content, meta)


# -----------------------
# Feed
# -----------------------

def _cdata(text: str) -> str:
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def render_feed(site: SiteModel, config: Config) -> Optional[str]:
    """
    RSS 2.0 feed of every entry with a publish date, newest first.
    Returns None when nothing has a publish date.
    """
    dated = [
        (publish_instant(e.published), e)
        for e in (*site.diary, *site.articles_index)
        if e.published is not None
    ]
    if not dated:
        return None
    dated.sort(key=lambda pair: (pair[0], pair[1].order), reverse=True)

    items_xml = []
    for published, entry in dated:
        link = config.absolute_url(entry_path(entry))
        items_xml.append(f"""  <item>
    <title>{html.escape(entry.name)}</title>
    <link>{html.escape(link)}</link>
    <guid>{html.escape(link)}</guid>
    <pubDate>{formatdate(published.timestamp(), usegmt=True)}</pubDate>
    <description>{_cdata(entry_body(entry, site.link_map))}</description>
  </item>""")

    last_build = formatdate(dated[0][0].timestamp(), usegmt=True)
    title = html.escape(config.name or "Diary")

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>{title}</title>
  <link>{html.escape(config.url)}</link>
  <description>{html.escape(config.description or "")}</description>
  <language>{html.escape(config.lang)}</language>
  <lastBuildDate>{last_build}</lastBuildDate>
{chr(10).join(items_xml)}
</channel>
</rss>
"""


def render_site(site: SiteModel, config: Config, layout: Layout) -> dict:
    """
    Render every page of the site.

    Returns {relative file name: text}, in a fixed order: indexes, archives,
    days, articles, independent pages, feed.
    """
    files = {
        output_file(INDEX_PATH): render_diary_index(site, config, layout),
        output_file(ARTICLES_PATH): render_articles_index(site, config, layout),
    }

    for year in site.years:
        files[output_file(year.path)] = render_archive_page(
            site, str(year.year), year.path, year.entries, config, layout
        )
        for month in year.months:
            title = f"{calendar.month_name[month.month]} {month.year}"
            files[output_file(month.path)] = render_archive_page(
                site, title, month.path, month.entries, config, layout
            )

    for entry in site.diary:
        files[output_file(entry_path(entry))] = render_day_page(site, entry, config, layout)

    for article in site.articles_index:
        files[output_file(entry_path(article))] = render_article_page(site, article, config, layout)

    for page in site.pages:
        files[output_file(page.path)] = render_independent_page(page, config, layout)

    if config.url:
        feed = render_feed(site, config)
        if feed is not None:
            files[FEED_FILE] = feed

    return files
