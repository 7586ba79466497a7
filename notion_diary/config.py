import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlsplit

import yaml

from .errors import ConfigError

CONFIG_FILENAMES = ("config.json", "config.yml")


@dataclass(frozen=True)
class Config:
    """Site-wide settings. Every field is optional."""

    name: Optional[str] = None
    description: Optional[str] = None
    locale: str = "en_US"
    url: Optional[str] = None
    author: Optional[str] = None
    cover: Optional[str] = None
    twitter_site: Optional[str] = None
    twitter_creator: Optional[str] = None

    @property
    def lang(self) -> str:
        return self.locale.split("_", 1)[0]

    def page_title(self, name: str) -> str:
        """Title for a page: "<name> - <diary name>", or just the name."""
        if self.name:
            return f"{name} - {self.name}"
        return name

    def absolute_url(self, path: str) -> Optional[str]:
        if not self.url:
            return None
        return urljoin(self.url, path.lstrip("/"))


def _optional_str(data: dict, key: str, source: Path) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{source.name}: '{key}' must be a string, got {type(value).__name__}")
    return value


def parse_config(data, source: Path) -> Config:
    """Validate an already-decoded config mapping and apply defaults."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source.name}: expected an object at the top level")

    locale = _optional_str(data, "locale", source) or "en_US"
    lang, _, region = locale.partition("_")
    if not lang or not region:
        raise ConfigError(f"{source.name}: '{locale}' is not a locale like en_US")

    url = _optional_str(data, "url", source)
    if url is not None:
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigError(f"{source.name}: url must be an absolute http(s) URL, got '{url}'")
        # urljoin drops the last segment unless the base ends with a slash
        if not url.endswith("/"):
            url += "/"

    # twitter can be missing, null, or an object
    twitter = data.get("twitter") or {}
    if not isinstance(twitter, dict):
        raise ConfigError(f"{source.name}: 'twitter' must be an object")

    return Config(
        name=_optional_str(data, "name", source),
        description=_optional_str(data, "description", source),
        locale=locale,
        url=url,
        author=_optional_str(data, "author", source),
        cover=_optional_str(data, "cover", source),
        twitter_site=_optional_str(twitter, "site", source),
        twitter_creator=_optional_str(twitter, "creator", source),
    )


def load_config(root: Path) -> Config:
    """
    Load config.json from the project root, falling back to config.yml.

    A missing file is not an error: the defaults have no diary name, so page
    titles carry only the entry name. A file that exists but does not parse,
    or has fields of the wrong type, raises ConfigError.
    """
    for filename in CONFIG_FILENAMES:
        path = root / filename
        if not path.exists():
            continue

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as error:
            raise ConfigError(f"Failed to read {path}: {error}") from error

        try:
            if path.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as error:
            raise ConfigError(f"Failed to parse {path}: {error}") from error

        return parse_config(data, path)

    return Config()
