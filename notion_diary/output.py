"""
Write the rendered site to disk.

Everything is written into a staging directory next to the output
directory and swapped into place at the end, so a failed build leaves the
previous output untouched and a successful one never keeps stale files.
"""
import logging
import os
import shutil
import tempfile
from pathlib import Path

from .errors import OutputWriteError, UnsafeOutputError

logger = logging.getLogger(__name__)

# Dropped into every tree write_site() produces. A non-empty directory
# without it is never replaced.
MARKER = ".notion-diary"


def _write_file(staging: Path, target: Path, relative: str, text: str):
    dest = staging / relative
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(text, encoding="utf-8")
    except OSError as error:
        raise OutputWriteError(target / relative, error) from error


def _copy_asset(staging: Path, target: Path, asset):
    dest = staging / asset.relative
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(asset.source, dest)
    except OSError as error:
        raise OutputWriteError(target / asset.relative, error) from error


def check_replaceable(out_dir: Path):
    """Refuse to replace a non-empty directory this tool did not write."""
    if not out_dir.is_dir() or (out_dir / MARKER).is_file():
        return
    if any(out_dir.iterdir()):
        raise UnsafeOutputError(
            f"{out_dir} is not empty and was not written by notion-diary; "
            "empty it or choose another --output"
        )


def _swap_into_place(staging: Path, out_dir: Path):
    """Replace out_dir with staging, removing the old tree afterwards."""
    old = None
    try:
        # mkdtemp creates 0700 directories; published sites need to be readable
        staging.chmod(0o755)
        if out_dir.exists():
            if not out_dir.is_dir():
                raise NotADirectoryError(f"{out_dir} exists and is not a directory")
            old = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-old-", dir=out_dir.parent))
            # os.replace onto an existing directory fails on Windows
            old.rmdir()
            os.replace(out_dir, old)
        os.replace(staging, out_dir)
    except OSError as error:
        if old is not None and old.exists() and not out_dir.exists():
            os.replace(old, out_dir)
        raise OutputWriteError(out_dir, error) from error

    if old is not None:
        shutil.rmtree(old, ignore_errors=True)


def write_site(files: dict, assets, out_dir: Path) -> int:
    """
    Write rendered pages and copy public assets into out_dir.

    `files` maps relative file names to page text. Returns the number of
    files written. Raises OutputWriteError naming the failing path, and
    UnsafeOutputError when out_dir holds files an earlier build did not
    write.
    """
    out_dir = Path(out_dir).resolve()
    try:
        check_replaceable(out_dir)
    except OSError as error:
        raise OutputWriteError(out_dir, error) from error

    try:
        out_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-", dir=out_dir.parent))
    except OSError as error:
        raise OutputWriteError(out_dir, error) from error

    try:
        _write_file(staging, out_dir, MARKER, "notion-diary\n")
        for relative, text in files.items():
            _write_file(staging, out_dir, relative, text)
            logger.info(f"Wrote {out_dir / relative}")

        for asset in assets:
            _copy_asset(staging, out_dir, asset)
            logger.info(f"Copied {asset.relative} to {out_dir / asset.relative}")

        _swap_into_place(staging, out_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    return len(files) + len(assets)
