"""Map parsed feed documents onto the canonical Feed/Entry model.

Nothing in here raises for missing fields: anything a feed leaves out comes
back as None, an empty list, or a value derived from a sibling field.
"""

import hashlib
import logging

from rss_agent.feed_parser import (
    FeedDialect,
    ParsedDocument,
    extract_icon,
    extract_links,
)
from rss_agent.models import Entry, Event, Feed, Link

logger = logging.getLogger(__name__)


def content_hash(text: str | None) -> str:
    """Stable identifier for entries that carry no id of their own."""
    return hashlib.md5((text or "").encode("utf-8")).hexdigest()


def select_url(links: list[Link]) -> str | None:
    """Prefer an HTML alternate link, else whatever link came first."""
    for link in links:
        if link.rel == "alternate" and link.type in ("text/html", None):
            return link.href
    return links[0].href if links else None


def normalize_feed(doc: ParsedDocument) -> Feed:
    """Build the canonical Feed from a parsed document."""
    raw = doc.feed
    links = extract_links(raw, doc.dialect)
    # dc:date and Atom-only <updated> land in "updated"
    published = _first(raw, "published", "updated")

    return Feed(
        id=_first(raw, "id", "guid"),
        type="atom" if doc.dialect is FeedDialect.ATOM else "rss",
        url=select_url(links),
        links=links,
        title=_first(raw, "title"),
        description=_first(raw, "description", "subtitle"),
        copyright=_copyright(raw),
        generator=_first(raw, "generator"),
        icon=extract_icon(raw, doc.dialect),
        authors=_feed_authors(raw),
        date_published=published,
        last_updated=_first(raw, "updated", "lastbuilddate") or published,
    )


def normalize_entry(raw: dict, dialect: FeedDialect) -> Entry:
    """Build the canonical Entry from one parsed feed item."""
    description = _first(raw, "summary", "description")
    content = _content(raw) or description
    author = _first(raw, "author", "itunes_author")
    links = extract_links(raw, dialect)
    published = _first(raw, "published", "updated")

    return Entry(
        id=_first(raw, "id", "guid") or content_hash(content),
        url=select_url(links),
        links=links,
        title=_first(raw, "title"),
        description=description,
        content=content,
        image=_image(raw),
        author=author,
        authors=[author] if author else [],
        categories=_categories(raw),
        date_published=published,
        last_updated=_first(raw, "updated") or published,
    )


def feed_to_events(doc: ParsedDocument) -> list[Event]:
    """Turn every entry of a document into an Event, in document order."""
    feed = normalize_feed(doc)
    events = [
        Event.from_entry(feed, normalize_entry(raw, doc.dialect))
        for raw in doc.entries
    ]
    logger.debug(
        "Normalized %d entries from %s feed %s",
        len(events), feed.type, doc.url or feed.url,
    )
    return events


# --- Field helpers ---


def _first(raw: dict, *keys: str) -> str | None:
    """Return the first non-empty value among the given keys."""
    for key in keys:
        value = raw.get(key)
        if value:
            return str(value)
    return None


def _feed_authors(raw: dict) -> list[str]:
    authors = []
    for detail in raw.get("authors") or []:
        if not isinstance(detail, dict):
            continue
        name = detail.get("name") or detail.get("email")
        if name:
            authors.append(name)
    if authors:
        return authors

    editor = _first(raw, "managingeditor", "author", "itunes_author")
    return [editor] if editor else []


def _copyright(raw: dict) -> str | None:
    explicit = raw.get("copyright")
    if isinstance(explicit, str) and explicit:
        return explicit

    rights = raw.get("rights")
    if isinstance(rights, (list, tuple)):
        rights = "\n".join(str(line) for line in rights if line)
    return rights or None


def _content(raw: dict) -> str | None:
    for body in raw.get("content") or []:
        value = body.get("value") if isinstance(body, dict) else None
        if value:
            return value
    return None


def _image(raw: dict) -> str | None:
    for key in ("media_content", "media_thumbnail"):
        for media in raw.get(key) or []:
            if isinstance(media, dict) and media.get("url"):
                return media["url"]

    image = raw.get("image")
    if isinstance(image, dict) and image.get("href"):
        return image["href"]

    for enclosure in raw.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    return None


def _categories(raw: dict) -> list[str]:
    return [tag["term"] for tag in raw.get("tags") or [] if tag.get("term")]
