"""
Build the diary site from a Notion database.

  NOTION_TOKEN=... notion-diary <database id> [--root DIR] [--output DIR]

Reads config.json, partials/, pages/ and public/ from the root directory
and writes the whole site to output/. Every run is a full rebuild.
"""
import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import Config, load_config
from .entries import classify_rows, filter_published
from .errors import (
    ConfigError,
    DiaryError,
    DuplicatePathError,
    FetchError,
    IndependentPageError,
    OutputWriteError,
    UnsafeOutputError,
)
from .notion import NotionClient
from .output import write_site
from .render import Layout, load_layout, render_site
from .site import assemble_site, collect_assets, collect_independent_pages

logger = logging.getLogger(__name__)

# Directories under the root that are read during a build
INPUT_DIRS = ("pages", "partials", "public")

# Failing stage shown to the user for each fatal error
STAGES = {
    ConfigError: "configuration",
    FetchError: "fetch",
    IndependentPageError: "independent pages",
    DuplicatePathError: "site assembly",
    OutputWriteError: "output",
    UnsafeOutputError: "output",
}


@dataclass(frozen=True)
class BuildContext:
    """Everything a build needs besides the rows themselves."""

    config: Config
    now: datetime
    root: Path
    output_dir: Path


@dataclass
class BuildResult:
    days: int = 0
    articles: int = 0
    pages: int = 0
    assets: int = 0
    unpublished: int = 0
    skipped: list = field(default_factory=list)


def check_output_dir(root: Path, output_dir: Path):
    """
    Refuse an output directory that would swallow the site sources: the
    root itself, a parent of it, or anything at or below pages/, partials/
    or public/.
    """
    output_dir = output_dir.resolve()
    root = root.resolve()
    if output_dir == root or output_dir in root.parents:
        raise UnsafeOutputError(f"output directory {output_dir} contains the site root {root}")
    for name in INPUT_DIRS:
        source = root / name
        if output_dir == source or source in output_dir.parents:
            raise UnsafeOutputError(f"output directory {output_dir} is inside {source}")


def generate(rows, ctx: BuildContext, layout: Optional[Layout] = None) -> BuildResult:
    """
    Run the pipeline on fetched rows and write the site.

    Rows that fail classification are skipped and returned in
    BuildResult.skipped. Anything structural (duplicate paths, unreadable
    pages, write failures) raises before or during the write and the
    previous output is left as it was.
    """
    check_output_dir(ctx.root, ctx.output_dir)
    if layout is None:
        layout = load_layout(ctx.root / "partials")

    # 1. Rows -> entries
    entries, diagnostics = classify_rows(rows)

    # 2. Publish gate
    published, unpublished = filter_published(entries, ctx.now)

    # 3. Files that don't come from Notion
    pages = collect_independent_pages(ctx.root / "pages")
    assets = collect_assets(ctx.root / "public")

    # 4. Site model; fails on any path collision
    if not ctx.config.url:
        logger.warning("No url in config, skipping the RSS feed")
    site = assemble_site(published, pages, assets, feed=bool(ctx.config.url))

    # 5. Render + write
    files = render_site(site, ctx.config, layout)
    write_site(files, site.assets, ctx.output_dir)

    return BuildResult(
        days=len(site.diary),
        articles=len(site.articles),
        pages=len(site.pages),
        assets=len(site.assets),
        unpublished=unpublished,
        skipped=diagnostics,
    )


def print_summary(result: BuildResult, output_dir: Path):
    print(
        f"Wrote {result.days} diary entries, {result.articles} articles, "
        f"{result.pages} pages and {result.assets} assets to {output_dir}"
    )
    if result.unpublished:
        print(f"Held back {result.unpublished} entries with a future publish date")
    if result.skipped:
        print(f"Skipped {len(result.skipped)} rows:")
        for error in result.skipped:
            print(f"  {error}")


def build(database_id: str, root: Path, output_dir: Path, token: str) -> BuildResult:
    check_output_dir(root, output_dir)
    config = load_config(root)
    layout = load_layout(root / "partials")
    ctx = BuildContext(
        config=config,
        now=datetime.now(timezone.utc),
        root=root,
        output_dir=output_dir,
    )

    with NotionClient(token) as client:
        rows = client.fetch_rows(database_id)

    return generate(rows, ctx, layout)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a static diary site from a Notion database.")
    parser.add_argument("database_id", help="ID of the Notion database holding the diary")
    parser.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Directory with config.json, partials/, pages/ and public/ (default: .)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output directory (default: <root>/output)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    token = os.environ.get("NOTION_TOKEN")
    if not token:
        print("Missing NOTION_TOKEN env variable", file=sys.stderr)
        sys.exit(1)

    root = args.root.resolve()
    output_dir = (args.output or root / "output").resolve()

    try:
        result = build(args.database_id, root, output_dir, token)
    except DiaryError as error:
        stage = STAGES.get(type(error), "build")
        print(f"Build failed during {stage}: {error}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    print_summary(result, output_dir)


if __name__ == "__main__":
    main()
