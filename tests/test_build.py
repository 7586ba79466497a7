"""End-to-end tests for the build pipeline and the CLI."""

from dataclasses import replace
from pathlib import Path

import pytest

from conftest import notion_row
from notion_diary import build as build_module
from notion_diary.build import BuildContext, BuildResult, generate, main
from notion_diary.config import Config
from notion_diary.errors import BothDateAndUrlPresent, DuplicatePathError, UnsafeOutputError


def read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def snapshot(directory: Path) -> dict:
    return {
        p.relative_to(directory).as_posix(): p.read_bytes()
        for p in sorted(directory.rglob("*"))
        if p.is_file()
    }


def test_scenario(ctx: BuildContext, scenario_rows) -> None:
    result = generate(scenario_rows, ctx)

    out = ctx.output_dir
    assert (out / "2024" / "01" / "01.html").exists()
    assert (out / "about.html").exists()
    assert not (out / "2024" / "01" / "02.html").exists()

    index = read(out / "index.html")
    assert "Day 1" in index
    assert "Day 2" not in index

    assert "<title>Day 1</title>" in read(out / "2024" / "01" / "01.html")
    assert "<p>storm</p>" in read(out / "2024" / "01" / "01.html")
    assert "<title>About</title>" in read(out / "about.html")

    assert result.days == 1
    assert result.articles == 1
    assert result.unpublished == 1
    assert result.skipped == []


def test_bad_rows_are_skipped_not_fatal(ctx: BuildContext) -> None:
    rows = [
        notion_row("good", "Day 1", date="2024-01-01"),
        notion_row("bad", "Both", date="2024-01-02", url="both"),
    ]

    result = generate(rows, ctx)

    assert result.days == 1
    assert len(result.skipped) == 1
    assert isinstance(result.skipped[0], BothDateAndUrlPresent)
    assert not (ctx.output_dir / "both.html").exists()
    assert not (ctx.output_dir / "2024" / "01" / "02.html").exists()


def test_duplicate_slugs_write_nothing(ctx: BuildContext) -> None:
    rows = [
        notion_row("one", "About", url="about"),
        notion_row("two", "About again", url="/about/"),
    ]

    with pytest.raises(DuplicatePathError):
        generate(rows, ctx)

    assert not ctx.output_dir.exists()


def test_rebuild_is_byte_identical(ctx: BuildContext, scenario_rows, root: Path) -> None:
    (root / "pages").mkdir()
    (root / "pages" / "now.md").write_text("Reading *a lot*.\n", encoding="utf-8")
    (root / "public").mkdir()
    (root / "public" / "style.css").write_text("body { margin: 0 }", encoding="utf-8")
    ctx = replace(ctx, config=Config(name="Diary", url="https://diary.example/"))

    generate(scenario_rows, replace(ctx, output_dir=root / "first"))
    generate(scenario_rows, replace(ctx, output_dir=root / "second"))

    first = snapshot(root / "first")
    assert first == snapshot(root / "second")
    assert "now.html" in first
    assert "style.css" in first


def test_independent_pages_and_assets(ctx: BuildContext, root: Path) -> None:
    (root / "partials").mkdir()
    (root / "partials" / "header.html").write_text('<a href="/">Home</a>', encoding="utf-8")
    (root / "pages").mkdir()
    (root / "pages" / "contact.html").write_text("<p>Write me</p>", encoding="utf-8")
    (root / "public" / "fonts").mkdir(parents=True)
    (root / "public" / "fonts" / "serif.woff2").write_bytes(b"\x77\x4f\x46\x32")

    result = generate([notion_row("a", "Day 1", date="2024-01-01")], ctx)

    contact = read(ctx.output_dir / "contact.html")
    assert "<p>Write me</p>" in contact
    assert '<a href="/">Home</a>' in contact
    assert "<title>Contact</title>" in contact
    assert "contact" not in read(ctx.output_dir / "articles.html")
    assert (ctx.output_dir / "fonts" / "serif.woff2").read_bytes() == b"\x77\x4f\x46\x32"
    assert result.pages == 1
    assert result.assets == 1


def test_feed_written_with_url(ctx: BuildContext) -> None:
    ctx = replace(ctx, config=Config(url="https://diary.example/"))
    generate([notion_row("a", "Day 1", date="2024-01-01", published="2024-01-01")], ctx)
    assert "<title>Day 1</title>" in read(ctx.output_dir / "rss.xml")


@pytest.mark.parametrize("output", [".", "..", "pages", "public/site"])
def test_output_dir_cannot_cover_the_sources(ctx: BuildContext, root: Path, output: str) -> None:
    (root / "config.json").write_text("{}", encoding="utf-8")
    (root / "pages").mkdir()
    (root / "pages" / "about.html").write_text("<p>About</p>", encoding="utf-8")
    (root / "public").mkdir()

    with pytest.raises(UnsafeOutputError):
        generate([notion_row("a", "Day 1", date="2024-01-01")], replace(ctx, output_dir=root / output))

    assert (root / "config.json").read_text(encoding="utf-8") == "{}"
    assert (root / "pages" / "about.html").exists()
    assert not (root / "index.html").exists()


def test_rebuild_replaces_its_own_output(ctx: BuildContext) -> None:
    generate([notion_row("a", "Day 1", date="2024-01-01")], ctx)
    generate([notion_row("b", "Day 2", date="2024-01-02")], ctx)

    assert (ctx.output_dir / "2024" / "01" / "02.html").exists()
    assert not (ctx.output_dir / "2024" / "01" / "01.html").exists()


# -----------------------
# CLI
# -----------------------

def test_main_requires_token(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.delenv("NOTION_TOKEN", raising=False)
    with pytest.raises(SystemExit) as info:
        main(["db1"])
    assert info.value.code == 1
    assert "NOTION_TOKEN" in capsys.readouterr().err


def test_main_reports_fatal_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture, root: Path
) -> None:
    def failing_build(*args, **kwargs):
        raise DuplicatePathError("about.html", "article one (About)", "article two (About again)")

    monkeypatch.setenv("NOTION_TOKEN", "secret")
    monkeypatch.setattr(build_module, "build", failing_build)

    with pytest.raises(SystemExit) as info:
        main(["db1", "--root", str(root)])

    assert info.value.code == 1
    err = capsys.readouterr().err
    assert "Build failed during site assembly" in err
    assert "about.html" in err


def test_main_prints_summary(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture, root: Path) -> None:
    calls = []

    def fake_build(database_id, root_dir, output_dir, token):
        calls.append((database_id, root_dir, output_dir, token))
        return BuildResult(days=2, articles=1, unpublished=1, skipped=[BothDateAndUrlPresent("r9")])

    monkeypatch.setenv("NOTION_TOKEN", "secret")
    monkeypatch.setattr(build_module, "build", fake_build)

    main(["db1", "--root", str(root)])

    assert calls == [("db1", root.resolve(), root.resolve() / "output", "secret")]
    out = capsys.readouterr().out
    assert "Wrote 2 diary entries, 1 articles" in out
    assert "Held back 1 entries" in out
    assert "row r9: has both a date and a url" in out
