"""Read database rows and page content from the Notion API."""

import logging
import math
import os
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx

from .entries import RawRow
from .errors import FetchError

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
PAGE_SIZE = 100
MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0

logger = logging.getLogger(__name__)


def retry_delay(response: httpx.Response) -> float:
    """Seconds to wait from a Retry-After header, in seconds or as an HTTP-date."""
    value = response.headers.get("Retry-After")
    if value is None:
        return DEFAULT_RETRY_DELAY
    try:
        delay = float(value)
    except ValueError:
        pass
    else:
        return max(delay, 0.0) if math.isfinite(delay) else DEFAULT_RETRY_DELAY
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Unreadable Retry-After header {value!r}")
        return DEFAULT_RETRY_DELAY
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class NotionClient:
    """Minimal Notion API client for reading a database.

    Args:
        token: Integration token (defaults to NOTION_TOKEN env var).
        client: Pre-configured httpx client, mostly for tests.
    """

    def __init__(self, token: Optional[str] = None, *, client: Optional[httpx.Client] = None) -> None:
        self._token = token or os.environ.get("NOTION_TOKEN")
        if not self._token:
            raise ValueError("Notion token required. Pass token or set NOTION_TOKEN env var.")
        self._client = client or httpx.Client(timeout=30.0)

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": NOTION_VERSION,
        }
        url = f"{NOTION_API_URL}{path}"

        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self._client.request(method, url, headers=headers, **kwargs)
            except httpx.HTTPError as error:
                raise FetchError(f"Request to {url} failed: {error}") from error

            if response.status_code == 429 and attempt < MAX_RETRIES:
                delay = retry_delay(response)
                logger.warning(f"Rate limited by Notion, retrying in {delay:.0f}s")
                time.sleep(delay)
                continue

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as error:
                raise FetchError(
                    f"Notion returned {response.status_code} for {path}: {response.text}"
                ) from error
            return response.json()

        raise FetchError(f"Gave up on {path} after {MAX_RETRIES} retries")

    def _paginate(self, method: str, path: str):
        cursor = None
        while True:
            if method == "POST":
                body = {"page_size": PAGE_SIZE}
                if cursor:
                    body["start_cursor"] = cursor
                data = self._request(method, path, json=body)
            else:
                params = {"page_size": PAGE_SIZE}
                if cursor:
                    params["start_cursor"] = cursor
                data = self._request(method, path, params=params)

            yield from data.get("results", [])

            if not data.get("has_more"):
                return
            cursor = data.get("next_cursor")

    def query_database(self, database_id: str) -> list[dict]:
        """All pages of a database, in the order Notion returns them."""
        return list(self._paginate("POST", f"/databases/{database_id}/query"))

    def block_children(self, block_id: str) -> list[dict]:
        """A block's children, with nested children attached under "children"."""
        blocks = []
        for block in self._paginate("GET", f"/blocks/{block_id}/children"):
            if block.get("has_children"):
                block = {**block, "children": self.block_children(block["id"])}
            blocks.append(block)
        return blocks

    def fetch_rows(self, database_id: str, *, with_content: bool = True) -> list[RawRow]:
        """Fetch every database row, optionally with its page content."""
        pages = self.query_database(database_id)
        logger.info(f"Fetched {len(pages)} rows from database {database_id}")

        rows = []
        for page in pages:
            children = self.block_children(page["id"]) if with_content else []
            rows.append(
                RawRow(
                    id=page["id"],
                    properties=page.get("properties", {}),
                    children=tuple(children),
                )
            )
        return rows
