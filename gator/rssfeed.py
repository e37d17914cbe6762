"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional, Union

import requests

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
USER_AGENT = "Gator/0.1"
DEFAULT_TIMEOUT = 10.0


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


@dataclass
class AtomLink:
    href: str = ""
    rel: str = ""
    type: str = ""


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    pub_date: str = ""
    guid: str = ""
    description: str = ""


@dataclass
class Channel:
    title: str = ""
    link: str = ""
    description: str = ""
    generator: str = ""
    language: str = ""
    last_build_date: str = ""
    atom: AtomLink = field(default_factory=AtomLink)
    items: list[RSSItem] = field(default_factory=list)


@dataclass
class RSSFeed:
    channel: Channel = field(default_factory=Channel)


_CHANNEL_FIELDS = {
    "title": "title",
    "link": "link",
    "description": "description",
    "generator": "generator",
    "language": "language",
    "lastBuildDate": "last_build_date",
}

_ITEM_FIELDS = {
    "title": "title",
    "link": "link",
    "pubDate": "pub_date",
    "guid": "guid",
    "description": "description",
}


def _split_tag(tag: str) -> tuple[str, str]:
    if tag.startswith("{"):
        namespace, local = tag[1:].split("}", 1)
        return namespace, local
    return "", tag


def _text(element: ET.Element) -> str:
    """Character data directly inside element, skipping nested elements."""
    return (element.text or "") + "".join(child.tail or "" for child in element)


def _parse_item(element: ET.Element) -> RSSItem:
    values: dict[str, str] = {}
    for child in element:
        _, local = _split_tag(child.tag)
        if local in _ITEM_FIELDS:
            values[_ITEM_FIELDS[local]] = html.unescape(_text(child))
    return RSSItem(**values)


def _parse_channel(element: ET.Element) -> Channel:
    values: dict[str, str] = {}
    atom = AtomLink()
    items: list[RSSItem] = []
    for child in element:
        namespace, local = _split_tag(child.tag)
        if local == "link" and namespace == ATOM_NAMESPACE:
            atom = AtomLink(
                href=html.unescape(child.get("href", "")),
                rel=html.unescape(child.get("rel", "")),
                type=html.unescape(child.get("type", "")),
            )
        elif local == "item":
            items.append(_parse_item(child))
        elif local in _CHANNEL_FIELDS:
            values[_CHANNEL_FIELDS[local]] = _text(child)

    channel = Channel(atom=atom, items=items, **values)
    # The channel link is kept exactly as it appears in the document.
    for name in ("title", "description", "generator", "language", "last_build_date"):
        setattr(channel, name, html.unescape(getattr(channel, name)))
    return channel


def parse_feed(data: Union[bytes, str]) -> RSSFeed:
    """Parse an RSS document, printing warnings for missing essentials."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise FeedError(f"error unmarshalling XML: {exc}") from exc

    channel_element = next(
        (child for child in root if _split_tag(child.tag)[1] == "channel"), None
    )
    channel = Channel() if channel_element is None else _parse_channel(channel_element)

    if not channel.title:
        print("Warning: feed has no title")
    if not channel.link:
        print("Warning: feed has no link")
    if not channel.description:
        print("Warning: feed has no description")
    if not channel.items:
        print("Warning: feed has no items")

    return RSSFeed(channel=channel)


def fetch_feed(
    feed_url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> RSSFeed:
    """Download the feed at feed_url and parse it."""
    if not feed_url:
        raise FeedError("feed URL is empty")

    headers = {"Accept": "application/rss+xml", "User-Agent": USER_AGENT}
    http = session if session is not None else requests.Session()
    try:
        try:
            response = http.get(feed_url, headers=headers, timeout=timeout)
        except requests.RequestException as exc:
            raise FeedError(f"error fetching feed: {exc}") from exc

        with response:
            content_type = response.headers.get("Content-Type", "")
            if "xml" not in content_type:
                raise FeedError(f"invalid content type: {content_type}")
            if response.status_code > 299:
                raise FeedError(
                    f"error fetching feed: {response.status_code} {response.reason}"
                )
            try:
                data = response.content
            except requests.RequestException as exc:
                raise FeedError(f"error reading response body: {exc}") from exc
    finally:
        if session is None:
            http.close()

    return parse_feed(data)