"""RSS/Atom feed parsing using feedparser.

Wraps ``feedparser`` output so the rest of the agent sees one attribute
surface regardless of whether the document was plain RSS, Atom, or RSS with
FeedBurner extensions. The dialect is decided once per document and drives
the dispatch tables below.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import feedparser

from rss_agent.models import LINK_ATTRS, Link

logger = logging.getLogger(__name__)

FEEDBURNER_NAMESPACE = "http://rssnamespace.org/feedburner/ext/1.0"


class FeedDialect(enum.Enum):
    """Feed flavours that need different link and metadata handling."""

    RSS = "rss"
    ATOM = "atom"
    FEEDBURNER_RSS = "feedburner_rss"


class FeedParseError(Exception):
    """Raised when a document cannot be parsed as a feed."""


@dataclass
class ParsedDocument:
    """Result of parsing one feed document."""

    dialect: FeedDialect
    feed: dict
    entries: list[dict]
    version: str = ""
    url: str | None = None
    warnings: list[str] = field(default_factory=list)


def _atom_links(raw: dict) -> list[Link]:
    links = []
    for attrs in raw.get("links") or []:
        if not attrs.get("href"):
            continue
        links.append(Link(**{
            attr: _as_text(attrs.get(attr)) for attr in LINK_ATTRS
        }))
    return links


def _rss_links(raw: dict) -> list[Link]:
    href = raw.get("link")
    return [Link(href=href)] if href else []


def _feedburner_links(raw: dict) -> list[Link]:
    """Plain RSS link first, then the atom10:link elements from the vendor namespace."""
    rss_links = _rss_links(raw)
    atom_links = _atom_links(raw)
    if rss_links:
        bare = rss_links[0].href
        for index, link in enumerate(atom_links):
            # feedparser echoes the bare <link> as an alternate entry
            if link.href == bare and link.rel == "alternate":
                del atom_links[index]
                break
    return rss_links + atom_links


def _atom_icon(raw: dict) -> str | None:
    return raw.get("icon") or raw.get("logo")


def _rss_icon(raw: dict) -> str | None:
    image = raw.get("image")
    if isinstance(image, dict):
        return image.get("href") or image.get("url")
    return None


LinkExtractor = Callable[[dict], list[Link]]
IconExtractor = Callable[[dict], str | None]

_LINK_EXTRACTORS: dict[FeedDialect, LinkExtractor] = {}
_ICON_EXTRACTORS: dict[FeedDialect, IconExtractor] = {}


def init_adapter() -> None:
    """Set up per-dialect handling. Safe to call more than once."""
    if _LINK_EXTRACTORS:
        return

    _LINK_EXTRACTORS.update({
        FeedDialect.ATOM: _atom_links,
        FeedDialect.RSS: _rss_links,
        FeedDialect.FEEDBURNER_RSS: _feedburner_links,
    })
    _ICON_EXTRACTORS.update({
        FeedDialect.ATOM: _atom_icon,
        FeedDialect.RSS: _rss_icon,
        FeedDialect.FEEDBURNER_RSS: _rss_icon,
    })

    # Make sure feedburner:* elements are routed to their own handlers
    mixin = getattr(getattr(feedparser, "mixin", None), "_FeedParserMixin", None)
    namespaces = getattr(mixin, "namespaces", None)
    if isinstance(namespaces, dict):
        namespaces.setdefault(FEEDBURNER_NAMESPACE, "feedburner")
    logger.debug("Feed parser adapter initialised (feedparser %s)", feedparser.__version__)


def extract_links(raw: dict, dialect: FeedDialect) -> list[Link]:
    """Return the canonical link sequence of a parsed feed or entry."""
    init_adapter()
    return _LINK_EXTRACTORS[dialect](raw)


def extract_icon(raw: dict, dialect: FeedDialect) -> str | None:
    """Return the feed icon URL, if the document declares one."""
    init_adapter()
    return _ICON_EXTRACTORS[dialect](raw)


def detect_dialect(parsed: dict) -> FeedDialect:
    """Pick the dialect from feedparser's version string and declared namespaces."""
    version = parsed.get("version") or ""
    if version.startswith("atom"):
        return FeedDialect.ATOM

    namespaces = parsed.get("namespaces") or {}
    if any("feedburner" in (uri or "") for uri in namespaces.values()):
        return FeedDialect.FEEDBURNER_RSS
    return FeedDialect.RSS


def parse_document(
    body: bytes | str,
    url: str | None = None,
    content_type: str | None = None,
) -> ParsedDocument:
    """Parse a raw RSS or Atom document.

    Args:
        body: The document as returned by the transport.
        url: Where the document came from, kept for error reporting.
        content_type: Content-Type of the response, which carries its charset.

    Returns:
        ParsedDocument with the raw feed, entries and detected dialect.

    Raises:
        FeedParseError: If the body is not a recognizable feed.
    """
    init_adapter()

    # feedparser treats a str as a URL or path, so always hand it bytes
    if isinstance(body, str):
        body = body.encode("utf-8")

    # No content-location: feedparser would resolve permalink guids against it
    response_headers = {"content-type": content_type} if content_type else None
    parsed = feedparser.parse(body, response_headers=response_headers)

    if not parsed.get("version") and not parsed.entries:
        if parsed.bozo and parsed.get("bozo_exception"):
            raise FeedParseError(
                f"Document is not a valid RSS or Atom feed: {parsed.bozo_exception}"
            )
        raise FeedParseError("Document is not a valid RSS or Atom feed")

    warnings: list[str] = []
    if parsed.bozo:
        warning = f"Feed has formatting issues: {parsed.get('bozo_exception')}"
        logger.warning("%s (%s)", warning, url or "inline document")
        warnings.append(warning)

    return ParsedDocument(
        dialect=detect_dialect(parsed),
        feed=parsed.feed,
        entries=list(parsed.entries),
        version=parsed.get("version") or "",
        url=url,
        warnings=warnings,
    )


def _as_text(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
