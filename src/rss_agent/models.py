"""Data models for RSS Agent."""

from dataclasses import dataclass, field

LINK_ATTRS = ("href", "rel", "type", "hreflang", "title", "length")


@dataclass
class Link:
    """A single <link> element from a feed or entry."""

    href: str
    rel: str | None = None
    type: str | None = None
    hreflang: str | None = None
    title: str | None = None
    length: str | None = None

    def to_dict(self) -> dict:
        """Serialize only the attributes that are set."""
        return {
            attr: getattr(self, attr)
            for attr in LINK_ATTRS
            if getattr(self, attr) is not None
        }


@dataclass
class Feed:
    """Canonical feed-level metadata, one per source URL per run."""

    type: str
    id: str | None = None
    url: str | None = None
    links: list[Link] = field(default_factory=list)
    title: str | None = None
    description: str | None = None
    copyright: str | None = None
    generator: str | None = None
    icon: str | None = None
    authors: list[str] = field(default_factory=list)
    date_published: str | None = None
    last_updated: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "url": self.url,
            "links": [link.to_dict() for link in self.links],
            "title": self.title,
            "description": self.description,
            "copyright": self.copyright,
            "generator": self.generator,
            "icon": self.icon,
            "authors": list(self.authors),
            "date_published": self.date_published,
            "last_updated": self.last_updated,
        }


@dataclass
class Entry:
    """A single feed item in canonical form."""

    id: str
    url: str | None = None
    links: list[Link] = field(default_factory=list)
    title: str | None = None
    description: str | None = None
    content: str | None = None
    image: str | None = None
    author: str | None = None
    authors: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    date_published: str | None = None
    last_updated: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "links": [link.to_dict() for link in self.links],
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "image": self.image,
            "author": self.author,
            "authors": list(self.authors),
            "categories": list(self.categories),
            "date_published": self.date_published,
            "last_updated": self.last_updated,
        }


@dataclass
class Event:
    """Unit of output: entry fields flattened next to a nested feed object."""

    payload: dict

    @classmethod
    def from_entry(cls, feed: Feed, entry: Entry) -> "Event":
        return cls(payload={"feed": feed.to_dict(), **entry.to_dict()})

    @property
    def id(self) -> str:
        return self.payload["id"]
