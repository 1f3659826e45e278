"""Polling cycle for RSS Agent: fetch, normalize, order, dedup, emit."""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field

from rss_agent.dedup import SeenIdCache
from rss_agent.feed_parser import FeedParseError, parse_document
from rss_agent.fetcher import TransportError
from rss_agent.models import Event
from rss_agent.normalizer import feed_to_events
from rss_agent.ordering import SortKey, sort_events

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 86400  # every_1d


@dataclass
class RunReport:
    """Outcome of one polling cycle."""

    urls: list[str]
    events: list[Event] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.events)

    def to_dict(self) -> dict:
        return {
            "urls": list(self.urls),
            "created_count": self.created_count,
            "events": [event.payload for event in self.events],
            "errors": [{"url": url, "message": message} for url, message in self.errors],
        }


def check_urls(
    urls: list[str],
    fetcher,
    cache: SeenIdCache,
    events_order: list[SortKey] | None = None,
    max_events: int = 0,
    emit: Callable[[Event], None] | None = None,
) -> RunReport:
    """Run one polling cycle over the given feed URLs.

    Args:
        urls: Feed URLs, fetched one at a time in this order.
        fetcher: Object with a ``fetch(url)`` method returning a FetchResult.
        cache: Seen-id cache; mutated in place.
        events_order: Sort keys for the aggregated events.
        max_events: Per-run cap on created events; 0 means unlimited.
        emit: Called once for every created event.

    Returns:
        RunReport with the created events and any per-URL errors.
    """
    report = RunReport(urls=list(urls))
    new_events: list[Event] = []

    for url in urls:
        try:
            result = fetcher.fetch(url)
            doc = parse_document(result.body, url=url, content_type=result.content_type)
            new_events.extend(feed_to_events(doc))
        except TransportError as e:
            logger.error("%s", e.message)
            report.errors.append((url, e.message))
        except FeedParseError as e:
            message = f"Failed to parse {url}: {e}"
            logger.error(message)
            report.errors.append((url, message))
        except Exception as e:
            message = f"Failed to fetch {url} with message '{e}'"
            logger.exception(message)
            report.errors.append((url, message))

    for event in sort_events(new_events, events_order):
        if not cache.is_new_and_track(event.id):
            continue
        # Anything past the cap is still tracked, so it will never be emitted
        if max_events > 0 and report.created_count >= max_events:
            continue
        report.events.append(event)
        if emit is not None:
            emit(event)

    logger.info(
        "Fetched %s and created %d event(s).",
        _to_sentence(urls), report.created_count,
    )
    return report


async def start_polling(check: Callable[[], RunReport], interval: int | None = None) -> None:
    """Run the polling loop indefinitely."""
    if interval is None:
        interval = int(os.environ.get("RSS_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
    logger.info("Poller started (interval: %ds)", interval)

    while True:
        try:
            report = await asyncio.to_thread(check)
            if report.errors:
                logger.warning("Poll cycle finished with %d error(s)", len(report.errors))
        except Exception as e:
            logger.error("Poll cycle failed: %s", e)

        await asyncio.sleep(interval)


def _to_sentence(items: list[str]) -> str:
    if len(items) < 2:
        return "".join(items)
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"
