"""Exceptions raised while building the site.

Row-level problems are ``ClassificationError``s: they are collected and
reported, and the row is skipped. Everything else aborts the build.
"""


class DiaryError(Exception):
    """Base class for every error raised by the generator."""


# -----------------------
# Row-level (recoverable)
# -----------------------

class ClassificationError(DiaryError):
    """A single row could not be turned into an entry."""

    reason = "invalid row"

    def __init__(self, row_id: str, detail: str = ""):
        self.row_id = row_id
        self.detail = detail
        message = f"row {row_id}: {self.reason}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class MissingName(ClassificationError):
    reason = "missing name"


class InvalidName(ClassificationError):
    reason = "invalid name"


class InvalidDescription(ClassificationError):
    reason = "invalid description"


class BothDateAndUrlPresent(ClassificationError):
    reason = "has both a date and a url"


class NeitherDateNorUrlPresent(ClassificationError):
    reason = "has neither a date nor a url"


class InvalidDateFormat(ClassificationError):
    reason = "invalid date"


class InvalidUrlFormat(ClassificationError):
    reason = "invalid url"


# -----------------------
# Structural / I/O (fatal)
# -----------------------

class ConfigError(DiaryError):
    """config.json (or config.yml) exists but cannot be used."""


class FetchError(DiaryError):
    """The Notion database could not be read."""


class DuplicatePathError(DiaryError):
    """Two outputs resolve to the same file."""

    def __init__(self, path: str, first: str, second: str):
        self.path = path
        self.first = first
        self.second = second
        super().__init__(f"{path} is claimed by both {first} and {second}")


class IndependentPageError(DiaryError):
    """The pages/ directory contains something that is not a page."""


class UnsafeOutputError(DiaryError):
    """The output directory would replace files the generator did not write."""


class OutputWriteError(DiaryError):
    """Writing the output tree failed."""

    def __init__(self, path, error: OSError):
        self.path = path
        self.error = error
        reason = error.strerror or str(error)
        super().__init__(f"failed to write {path}: {reason}")
