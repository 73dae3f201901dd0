"""
RSS/Atom feed helper exposed to templates as rss_items(url).
"""

import logging
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import List, Optional

import requests
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M"


class FeedError(Exception):
    """A feed could not be fetched or parsed."""


class FeedItem:
    """One entry of a feed."""

    def __init__(self, title: str = "", link: str = "", pub_date: str = ""):
        self.title = title
        self.link = link
        self.pub_date = pub_date

    def __repr__(self):
        return f"FeedItem(title={self.title!r}, link={self.link!r}, pub_date={self.pub_date!r})"


def format_rfc2822(value: str) -> str:
    try:
        return parsedate_to_datetime(value).strftime(DATE_FORMAT)
    except (TypeError, ValueError):
        return value


def format_rfc3339(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime(DATE_FORMAT)
    except ValueError:
        return value


def _text(tag) -> str:
    if tag is None:
        return ""
    return tag.get_text(strip=True)


def _rss_item(item) -> FeedItem:
    pub_date = _text(item.find("pubDate", recursive=False))
    if pub_date:
        pub_date = format_rfc2822(pub_date)
    else:
        dc_date = _text(item.find(["dc:date", "date"], recursive=False))
        pub_date = format_rfc3339(dc_date) if dc_date else ""
    return FeedItem(
        title=_text(item.find("title", recursive=False)),
        link=_text(item.find("link", recursive=False)),
        pub_date=pub_date,
    )


def _atom_entry(entry) -> FeedItem:
    link = ""
    for link_tag in entry.find_all("link", recursive=False):
        if link_tag.get("rel", "alternate") == "alternate":
            link = link_tag.get("href", "")
            break
    date = _text(entry.find("published", recursive=False)) or _text(entry.find("updated", recursive=False))
    return FeedItem(
        title=_text(entry.find("title", recursive=False)),
        link=link,
        pub_date=format_rfc3339(date) if date else "",
    )


def parse_feed(text: str) -> List[FeedItem]:
    """
    Parse RSS 2.0 or Atom XML into feed items.

    Raises:
        FeedError: If the document is not a known feed type
    """
    try:
        soup = BeautifulSoup(text, "lxml-xml")
    except ParserRejectedMarkup as e:
        raise FeedError(f"Malformed feed: {e}") from e

    root = soup.find(True)
    if root is not None and root.name == "feed":
        return [_atom_entry(entry) for entry in root.find_all("entry", recursive=False)]

    channel = root.find("channel", recursive=False) if root is not None and root.name == "rss" else None
    if channel is None:
        raise FeedError(f"Unsupported feed root element: {root.name if root is not None else None}")
    return [_rss_item(item) for item in channel.find_all("item", recursive=False)]


def fetch_items(url: str, timeout: float = 10.0) -> List[FeedItem]:
    """
    Fetch a feed and return its items.

    Args:
        url: Feed URL
        timeout: Request timeout in seconds

    Returns:
        List[FeedItem]: Items in document order

    Raises:
        FeedError: If the request fails or the feed cannot be parsed
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to fetch feed {url}: {e}")
        raise FeedError(f"Failed to fetch feed {url}: {e}") from e

    items = parse_feed(response.text)
    logger.debug(f"Fetched {len(items)} items from {url}")
    return items
