"""
Render Notion block trees and rich text to HTML fragments.

Only the block types a diary realistically uses are supported; anything
else is skipped with a debug message. Links to other pages of the same
database are rewritten to their generated paths through `link_map`
(row id -> site path).
"""
import html
import logging

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

LIST_TAGS = {
    "bulleted_list_item": "ul",
    "numbered_list_item": "ol",
    "to_do": "ul",
}

# page titles are <h1>, so Notion headings move down one level
HEADING_TAGS = {
    "heading_1": "h2",
    "heading_2": "h3",
    "heading_3": "h4",
}


def normalize_id(notion_id: str) -> str:
    return notion_id.replace("-", "").lower()


def resolve_link(href: str, link_map) -> str:
    """Rewrite links to other diary pages; leave everything else alone."""
    if not link_map:
        return href
    candidate = normalize_id(href.lstrip("/").split("#", 1)[0].split("?", 1)[0])
    for row_id, path in link_map.items():
        if normalize_id(row_id) == candidate:
            return path
    return href


def wrap_images_with_figures(html_fragment: str) -> str:
    """
    Wrap <img> tags in <figure> with <figcaption> using the alt text.
    This exposes the alt text (the Notion caption) as a visible caption.
    """
    soup = BeautifulSoup(html_fragment, "html.parser")

    for img in soup.find_all("img"):
        alt = img.get("alt", "").strip()

        # Skip if already inside a figure
        if img.find_parent("figure"):
            continue

        figure = soup.new_tag("figure")
        figure["class"] = "entry-figure"

        img.replace_with(figure)
        figure.append(img)

        if alt:
            caption = soup.new_tag("figcaption")
            caption.string = alt
            figure.append(caption)

    return str(soup)


# -----------------------
# Rich text
# -----------------------

def render_rich_text(items, link_map=None) -> str:
    parts = []
    for item in items or []:
        kind = item.get("type", "text")

        if kind == "equation":
            expression = item.get("equation", {}).get("expression", "")
            parts.append(f'<span class="equation">{html.escape(expression)}</span>')
            continue

        text = html.escape(item.get("plain_text") or item.get("text", {}).get("content", ""))
        annotations = item.get("annotations") or {}
        if annotations.get("code"):
            text = f"<code>{text}</code>"
        if annotations.get("bold"):
            text = f"<strong>{text}</strong>"
        if annotations.get("italic"):
            text = f"<em>{text}</em>"
        if annotations.get("strikethrough"):
            text = f"<del>{text}</del>"
        if annotations.get("underline"):
            text = f"<u>{text}</u>"

        href = item.get("href")
        if kind == "mention":
            mention = item.get("mention", {})
            page = mention.get(mention.get("type"), {})
            if mention.get("type") == "page" and page.get("id") in (link_map or {}):
                href = link_map[page["id"]]
        if href:
            href = resolve_link(href, link_map)
            text = f'<a href="{html.escape(href)}">{text}</a>'

        parts.append(text)
    return "".join(parts)


def plain_rich_text(items) -> str:
    return "".join(item.get("plain_text", "") for item in items or [])


# -----------------------
# Blocks
# -----------------------

def _file_url(data: dict) -> str:
    kind = data.get("type")
    return (data.get(kind) or {}).get("url", "")


def render_block(block: dict, link_map=None) -> str:
    kind = block.get("type")
    data = block.get(kind) or {}
    text = render_rich_text(data.get("rich_text"), link_map)
    children = render_blocks(block.get("children"), link_map)

    if kind == "paragraph":
        return f"<p>{text}</p>{children}"

    if kind in HEADING_TAGS:
        tag = HEADING_TAGS[kind]
        anchor = normalize_id(block.get("id", ""))
        if not anchor:
            return f"<{tag}>{text}</{tag}>"
        return f'<{tag} id="{anchor}">{text} <a href="#{anchor}">#</a></{tag}>'

    if kind in ("bulleted_list_item", "numbered_list_item"):
        return f"<li>{text}{children}</li>"

    if kind == "to_do":
        checked = " checked" if data.get("checked") else ""
        return f'<li class="to-do"><input type="checkbox" disabled{checked}> {text}{children}</li>'

    if kind == "quote":
        return f"<blockquote>{text}{children}</blockquote>"

    if kind == "callout":
        icon = (data.get("icon") or {}).get("emoji", "")
        icon_html = f'<span class="callout-icon">{html.escape(icon)}</span>' if icon else ""
        return f'<aside class="callout">{icon_html}<div>{text}{children}</div></aside>'

    if kind == "toggle":
        return f"<details><summary>{text}</summary>{children}</details>"

    if kind == "code":
        language = html.escape(data.get("language", "plain text").replace(" ", "-"))
        code = html.escape(plain_rich_text(data.get("rich_text")))
        return f'<pre><code class="language-{language}">{code}</code></pre>'

    if kind == "equation":
        return f'<div class="equation">{html.escape(data.get("expression", ""))}</div>'

    if kind == "divider":
        return "<hr>"

    if kind == "image":
        src = html.escape(_file_url(data))
        alt = html.escape(plain_rich_text(data.get("caption")))
        return f'<img src="{src}" alt="{alt}">'

    if kind == "bookmark":
        url = html.escape(data.get("url", ""))
        return f'<p class="bookmark"><a href="{url}">{url}</a></p>'

    logger.debug(f"Skipping unsupported block type {kind} ({block.get('id')})")
    return ""


def render_blocks(blocks, link_map=None) -> str:
    """Render a list of sibling blocks, grouping list items into lists."""
    parts = []
    open_list = None

    for block in blocks or []:
        list_tag = LIST_TAGS.get(block.get("type"))
        if list_tag != open_list:
            if open_list:
                parts.append(f"</{open_list}>")
            if list_tag:
                parts.append(f"<{list_tag}>")
            open_list = list_tag
        parts.append(render_block(block, link_map))

    if open_list:
        parts.append(f"</{open_list}>")

    return "".join(parts)


def render_body(blocks, link_map=None) -> str:
    """Full HTML for a page's content, images wrapped in figures."""
    rendered = render_blocks(blocks, link_map)
    if "<img" not in rendered:
        return rendered
    return wrap_images_with_figures(rendered)
