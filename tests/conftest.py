"""Shared test fixtures for RSS Agent tests."""

import os
import tempfile

import pytest

from rss_agent.database import Database
from rss_agent.fetcher import FetchResult, TransportError
from rss_agent.models import Event


SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <generator>ExampleGen 1.0</generator>
    <pubDate>Mon, 01 Jan 2024 08:00:00 GMT</pubDate>
    <image>
      <url>https://example.com/icon.png</url>
      <title>Test Feed</title>
      <link>https://example.com</link>
    </image>
    <item>
      <title>First Article</title>
      <link>https://example.com/article-1</link>
      <guid>article-1</guid>
      <description>Description of the first article</description>
      <category>news</category>
      <category>tech</category>
      <pubDate>Wed, 03 Jan 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/article-2</link>
      <guid>article-2</guid>
      <description>Description of the second article</description>
      <pubDate>Mon, 01 Jan 2024 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Article Without Guid</title>
      <link>https://example.com/article-3</link>
      <description>No identifier here</description>
    </item>
  </channel>
</rss>"""

SAMPLE_ATOM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <id>urn:uuid:test-feed</id>
  <link rel="self" type="application/atom+xml" href="https://example.com/index.atom"/>
  <link rel="alternate" type="text/html" href="https://example.com/"/>
  <subtitle>A test Atom feed</subtitle>
  <updated>2024-01-05T10:00:00Z</updated>
  <icon>https://example.com/favicon.ico</icon>
  <rights>Copyright Example Inc.</rights>
  <author>
    <name>Jane Doe</name>
  </author>
  <entry>
    <title>Atom Entry 1</title>
    <link href="https://example.com/entry-1"/>
    <id>urn:uuid:entry-1</id>
    <summary>Summary of entry 1</summary>
    <content type="text">Full text of entry 1</content>
    <author>
      <name>John Roe</name>
    </author>
    <category term="updates"/>
    <updated>2024-01-05T10:00:00Z</updated>
  </entry>
</feed>"""

SAMPLE_FEEDBURNER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:atom10="http://www.w3.org/2005/Atom" xmlns:feedburner="http://rssnamespace.org/feedburner/ext/1.0" version="2.0">
  <channel>
    <title>Burned Feed</title>
    <link>https://blog.example.com/</link>
    <description>A FeedBurner feed</description>
    <atom10:link rel="self" type="application/rss+xml" href="https://feeds.feedburner.com/example"/>
    <feedburner:info uri="example"/>
    <item>
      <title>Burned Post</title>
      <link>https://feedproxy.example.com/~r/example/~3/abc/</link>
      <guid isPermaLink="false">tag:blog.example.com,2024:post-1</guid>
      <description>Burned post body</description>
      <pubDate>Tue, 02 Jan 2024 12:00:00 GMT</pubDate>
      <feedburner:origLink>https://blog.example.com/post-1</feedburner:origLink>
    </item>
  </channel>
</rss>"""

SAMPLE_RDF_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel rdf:about="https://rdf.example.com/">
    <title>RDF Feed</title>
    <link>https://rdf.example.com/</link>
    <description>An RSS 1.0 feed</description>
    <dc:date>2024-01-02T00:00:00Z</dc:date>
  </channel>
  <item rdf:about="https://rdf.example.com/item-1">
    <title>RDF Item</title>
    <link>https://rdf.example.com/item-1</link>
    <dc:date>2024-01-03T00:00:00Z</dc:date>
  </item>
</rdf:RDF>"""

SAMPLE_DC_DATE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Dublin Core Feed</title>
    <link>https://dc.example.com/</link>
    <dc:date>2024-01-02T00:00:00Z</dc:date>
    <item>
      <title>Dated Item</title>
      <guid>dc-item-1</guid>
      <dc:date>2024-01-03T00:00:00Z</dc:date>
    </item>
  </channel>
</rss>"""

SAMPLE_NOT_A_FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<html>
  <body>This is not a feed</body>
</html>"""


def rss_document(items: list[dict], title: str = "Generated Feed") -> str:
    """Build a small RSS 2.0 document from item dicts (guid, title, pubDate, description)."""
    parts = []
    for item in items:
        fields = []
        for tag in ("title", "guid", "description", "pubDate"):
            if item.get(tag):
                fields.append(f"<{tag}>{item[tag]}</{tag}>")
        parts.append(f"<item>{''.join(fields)}</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{title}</title>'
        f"<link>https://example.com/</link>{''.join(parts)}</channel></rss>"
    )


class StubFetcher:
    """Fetcher that serves canned documents or raises per URL."""

    def __init__(self, responses: dict):
        self.responses = responses
        self.requested: list[str] = []
        self.closed = False

    def fetch(self, url: str) -> FetchResult:
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return FetchResult(url=url, status_code=200, body=response.encode("utf-8"))

    def close(self) -> None:
        self.closed = True


def make_event(entry_id: str, date_published=None, last_updated=None, **fields) -> Event:
    """Build an Event with just enough payload to sort and dedup."""
    payload = {
        "feed": {"title": fields.pop("feed_title", "Feed")},
        "id": entry_id,
        "date_published": date_published,
        "last_updated": last_updated,
    }
    payload.update(fields)
    return Event(payload=payload)


@pytest.fixture
def tmp_db_path():
    """Provide a temporary SQLite database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def db(tmp_db_path):
    """Connected Database on a temporary file."""
    database = Database(tmp_db_path)
    database.connect()
    yield database
    database.close()


@pytest.fixture
def sample_rss_xml():
    """Sample valid RSS 2.0 XML."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_atom_xml():
    """Sample valid Atom XML."""
    return SAMPLE_ATOM_XML


@pytest.fixture
def sample_feedburner_xml():
    """Sample RSS 2.0 XML with FeedBurner extensions."""
    return SAMPLE_FEEDBURNER_XML


@pytest.fixture
def sample_not_a_feed_xml():
    """Sample XML that is not a feed."""
    return SAMPLE_NOT_A_FEED_XML


@pytest.fixture
def transport_error():
    """Factory for TransportErrors as the fetcher would raise them."""
    def _make(url: str, status: int = 500) -> TransportError:
        return TransportError(url, f"Failed to fetch {url}: HTTP {status}")
    return _make
