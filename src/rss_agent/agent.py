"""RSS agent: ties options, persisted memory and the polling cycle together."""

import copy
import logging
import threading
from datetime import datetime, timedelta

from rss_agent.config import AgentOptions
from rss_agent.database import Database
from rss_agent.dedup import SeenIdCache
from rss_agent.feed_parser import init_adapter
from rss_agent.fetcher import FeedFetcher
from rss_agent.models import Event
from rss_agent.poller import RunReport, check_urls

logger = logging.getLogger(__name__)


class RssAgent:
    """One configured feed watcher with its own memory and event log.

    Args:
        options: Validated agent options.
        db: Connected database holding memory, events and error logs.
        name: Key under which this agent's state is stored.
        fetcher: Transport override; built from ``options`` when omitted.
    """

    def __init__(
        self,
        options: AgentOptions,
        db: Database,
        name: str = "rss_agent",
        fetcher: FeedFetcher | None = None,
    ):
        init_adapter()
        self.options = options
        self.db = db
        self.name = name
        self.fetcher = fetcher or FeedFetcher.from_options(options)
        # Memory is read-modify-written once per run; runs must not overlap
        self._lock = threading.Lock()

    def check(self) -> RunReport:
        """Poll every configured URL, store new events and save memory."""
        with self._lock:
            memory = self.db.load_memory(self.name)
            cache = SeenIdCache.from_memory(memory)
            created: list[Event] = []

            report = check_urls(
                self.options.urls,
                self.fetcher,
                cache,
                events_order=self.options.events_order,
                max_events=self.options.max_events_per_run,
                emit=created.append,
            )

            self.db.commit_run(
                self.name,
                created,
                [message for _url, message in report.errors],
                cache.to_memory(memory),
            )
            return report

    def dry_run(self) -> RunReport:
        """Run a full cycle against a copy of memory without persisting anything."""
        with self._lock:
            memory = copy.deepcopy(self.db.load_memory(self.name))
        cache = SeenIdCache.from_memory(memory)
        report = check_urls(
            self.options.urls,
            self.fetcher,
            cache,
            events_order=self.options.events_order,
            max_events=self.options.max_events_per_run,
        )
        logger.info("Dry run would have created %d event(s)", report.created_count)
        return report

    def working(self, now: datetime | None = None) -> bool:
        """True if an event was created recently enough and no error followed it."""
        now = now or datetime.utcnow()
        last_event = self.db.last_event_at(self.name)
        if last_event is None:
            return False
        window = timedelta(days=self.options.expected_update_period_in_days)
        if now - last_event > window:
            return False
        return self.db.recent_error_count(self.name, since=last_event) == 0

    def close(self) -> None:
        self.fetcher.close()
