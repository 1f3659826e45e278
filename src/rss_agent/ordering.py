"""Deterministic ordering of newly discovered events.

Sort keys are ``[template, type]`` or ``[template, type, descending]`` lists
where ``template`` is rendered against the event payload, e.g.
``"{{date_published}}"`` or ``"{{feed.title}}"``.
"""

import logging
import math
from dataclasses import dataclass
from datetime import timezone
from functools import lru_cache

import jinja2
from dateutil import parser as date_parser

from rss_agent.models import Event

logger = logging.getLogger(__name__)

SORT_TYPES = ("time", "string", "number")

DEFAULT_EVENTS_ORDER = [["{{date_published}}", "time"], ["{{last_updated}}", "time"]]

_env = jinja2.Environment(
    autoescape=False,
    finalize=lambda value: "" if value is None else value,
)


class EventsOrderError(ValueError):
    """Raised when an events_order setting is malformed."""


@dataclass(frozen=True)
class SortKey:
    """One level of the configured sort, most significant first."""

    template: str
    type: str = "string"
    descending: bool = False

    def value_for(self, event: Event):
        """Render and convert this key for an event. None means missing."""
        rendered = _render(self.template, event.payload).strip()
        if self.type == "string":
            return rendered
        if not rendered:
            return None
        if self.type == "number":
            try:
                number = float(rendered)
            except ValueError:
                return None
            return number if math.isfinite(number) else None
        return _parse_time(rendered)


def parse_events_order(raw: list | None) -> list[SortKey]:
    """Convert an events_order option into SortKeys.

    Falls back to DEFAULT_EVENTS_ORDER when ``raw`` is empty.

    Raises:
        EventsOrderError: If an entry is not a [template, type(, descending)] list.
    """
    if not raw:
        raw = DEFAULT_EVENTS_ORDER
    if not isinstance(raw, (list, tuple)):
        raise EventsOrderError("events_order must be an array of arrays")

    keys = []
    for item in raw:
        if not isinstance(item, (list, tuple)) or len(item) not in (2, 3):
            raise EventsOrderError(
                "Each events_order entry must be [template, type] or [template, type, descending]"
            )
        template, sort_type = item[0], item[1]
        if not isinstance(template, str):
            raise EventsOrderError(f"events_order template must be a string: {template!r}")
        if sort_type not in SORT_TYPES:
            raise EventsOrderError(
                f"Unknown events_order type {sort_type!r}; expected one of {', '.join(SORT_TYPES)}"
            )
        try:
            _compile(template)
        except jinja2.TemplateSyntaxError as e:
            raise EventsOrderError(f"Invalid events_order template {template!r}: {e}") from e

        descending = _to_bool(item[2]) if len(item) == 3 else False
        keys.append(SortKey(template=template, type=sort_type, descending=descending))
    return keys


def sort_events(events: list[Event], order: list[SortKey] | None = None) -> list[Event]:
    """Return events sorted by the given keys.

    The sort is stable: events with equal keys keep their input order. Missing
    or unparseable values sort after present ones whichever way a key runs.
    """
    if order is None:
        order = parse_events_order(DEFAULT_EVENTS_ORDER)
    if not order or len(events) < 2:
        return list(events)

    decorated = [
        (tuple(key.value_for(event) for key in order), event)
        for event in events
    ]

    # Least significant key first; each pass is stable
    for level in reversed(range(len(order))):
        present = [item for item in decorated if item[0][level] is not None]
        missing = [item for item in decorated if item[0][level] is None]
        present.sort(key=lambda item: item[0][level], reverse=order[level].descending)
        decorated = present + missing

    return [event for _, event in decorated]


@lru_cache(maxsize=64)
def _compile(template: str) -> jinja2.Template:
    return _env.from_string(template)


def _render(template: str, payload: dict) -> str:
    try:
        return _compile(template).render(**payload)
    except jinja2.TemplateError as e:
        logger.warning("Could not render sort template %r: %s", template, e)
        return ""


def _parse_time(value: str) -> float | None:
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        logger.debug("Unparseable time value %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.timestamp()
    except (OverflowError, OSError, ValueError):
        return None


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)
