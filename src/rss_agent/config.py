"""Agent options: defaults, loading and validation."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from rss_agent.ordering import (
    DEFAULT_EVENTS_ORDER,
    EventsOrderError,
    SortKey,
    parse_events_order,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = {
    "expected_update_period_in_days": "5",
    "url": "https://github.com/cantino/huginn/commits/master.atom",
}


class ValidationError(ValueError):
    """Raised when agent options are missing or malformed.

    All problems found are collected in ``errors`` so they can be reported
    together.
    """

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass
class AgentOptions:
    """Validated options for one RSS agent."""

    urls: list[str]
    expected_update_period_in_days: int
    max_events_per_run: int = 0
    events_order: list[SortKey] = field(
        default_factory=lambda: parse_events_order(DEFAULT_EVENTS_ORDER)
    )
    headers: dict[str, str] = field(default_factory=dict)
    basic_auth: tuple[str, str] | None = None
    disable_ssl_verification: bool = False
    disable_url_encoding: bool = False
    force_encoding: str | None = None
    user_agent: str | None = None


def validate_options(raw: dict) -> AgentOptions:
    """Check raw options and convert them into AgentOptions.

    Args:
        raw: Options as a host would store them (strings or JSON values).

    Returns:
        AgentOptions ready for a run.

    Raises:
        ValidationError: If any option is missing or invalid.
    """
    errors: list[str] = []

    urls = _urls(raw.get("url"))
    if not urls:
        errors.append("url is required")

    period = _positive_int(raw.get("expected_update_period_in_days"))
    if period is None:
        errors.append(
            "Please provide 'expected_update_period_in_days' to indicate how many days "
            "can pass without an update before this Agent is considered to not be working"
        )

    max_events = _non_negative_int(raw.get("max_events_per_run"))
    if max_events is None:
        errors.append("max_events_per_run must be a non-negative integer")

    events_order: list[SortKey] = []
    try:
        events_order = parse_events_order(raw.get("events_order"))
    except EventsOrderError as e:
        errors.append(str(e))

    headers = raw.get("headers") or {}
    if not isinstance(headers, dict):
        errors.append("headers must be a hash")
        headers = {}

    basic_auth = None
    if raw.get("basic_auth"):
        basic_auth = _basic_auth(raw["basic_auth"])
        if basic_auth is None:
            errors.append("basic_auth must be 'user:pass' or [user, pass]")

    if errors:
        raise ValidationError(errors)

    return AgentOptions(
        urls=urls,
        expected_update_period_in_days=period,
        max_events_per_run=max_events,
        events_order=events_order,
        headers={str(k): str(v) for k, v in headers.items()},
        basic_auth=basic_auth,
        disable_ssl_verification=_truthy(raw.get("disable_ssl_verification")),
        disable_url_encoding=_truthy(raw.get("disable_url_encoding")),
        force_encoding=raw.get("force_encoding") or None,
        user_agent=raw.get("user_agent") or None,
    )


def load_options(path: str | Path) -> dict:
    """Read raw options from a JSON file."""
    with open(path, encoding="utf-8") as f:
        options = json.load(f)
    if not isinstance(options, dict):
        raise ValidationError([f"{path} must contain a JSON object"])
    logger.info("Loaded agent options from %s", path)
    return options


# --- Helper functions ---


def _urls(value) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(url).strip() for url in value if url and str(url).strip()]


def _to_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _positive_int(value) -> int | None:
    number = _to_int(value)
    return number if number is not None and number > 0 else None


def _non_negative_int(value) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    number = _to_int(value)
    return number if number is not None and number >= 0 else None


def _basic_auth(value) -> tuple[str, str] | None:
    if isinstance(value, str) and ":" in value:
        username, password = value.split(":", 1)
        return username, password
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return str(value[0]), str(value[1])
    return None


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)
