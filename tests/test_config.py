"""Tests for option validation and loading."""

import json

import pytest

from rss_agent.config import DEFAULT_OPTIONS, ValidationError, load_options, validate_options
from rss_agent.ordering import SortKey


def test_default_options_are_valid():
    options = validate_options(DEFAULT_OPTIONS)

    assert options.urls == ["https://github.com/cantino/huginn/commits/master.atom"]
    assert options.expected_update_period_in_days == 5
    assert options.max_events_per_run == 0
    assert options.events_order == [
        SortKey("{{date_published}}", "time"),
        SortKey("{{last_updated}}", "time"),
    ]


def test_url_list_is_kept_in_order():
    options = validate_options({
        "url": ["https://a.example.com/feed", " https://b.example.com/feed ", ""],
        "expected_update_period_in_days": "2",
    })

    assert options.urls == ["https://a.example.com/feed", "https://b.example.com/feed"]


def test_all_problems_are_reported_together():
    with pytest.raises(ValidationError) as exc_info:
        validate_options({"expected_update_period_in_days": "0"})

    errors = exc_info.value.errors
    assert errors[0] == "url is required"
    assert errors[1].startswith("Please provide 'expected_update_period_in_days'")
    assert len(errors) == 2


@pytest.mark.parametrize("period", [None, "", "abc", -1, 0, True])
def test_expected_update_period_must_be_positive(period):
    with pytest.raises(ValidationError):
        validate_options({"url": "https://example.com/feed", "expected_update_period_in_days": period})


@pytest.mark.parametrize("value,expected", [(None, 0), ("", 0), ("3", 3), (10, 10), (0, 0)])
def test_max_events_per_run(value, expected):
    options = validate_options({
        "url": "https://example.com/feed",
        "expected_update_period_in_days": 1,
        "max_events_per_run": value,
    })

    assert options.max_events_per_run == expected


def test_negative_max_events_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_options({
            "url": "https://example.com/feed",
            "expected_update_period_in_days": 1,
            "max_events_per_run": "-2",
        })

    assert exc_info.value.errors == ["max_events_per_run must be a non-negative integer"]


def test_bad_events_order_is_a_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        validate_options({
            "url": "https://example.com/feed",
            "expected_update_period_in_days": 1,
            "events_order": [["{{title}}", "color"]],
        })

    assert "Unknown events_order type" in exc_info.value.errors[0]


def test_custom_events_order():
    options = validate_options({
        "url": "https://example.com/feed",
        "expected_update_period_in_days": 1,
        "events_order": [["{{title}}", "string", True]],
    })

    assert options.events_order == [SortKey("{{title}}", "string", descending=True)]


@pytest.mark.parametrize("value,expected", [
    ("user:pa:ss", ("user", "pa:ss")),
    (["user", "secret"], ("user", "secret")),
])
def test_basic_auth_forms(value, expected):
    options = validate_options({
        "url": "https://example.com/feed",
        "expected_update_period_in_days": 1,
        "basic_auth": value,
    })

    assert options.basic_auth == expected


def test_malformed_basic_auth_and_headers():
    with pytest.raises(ValidationError) as exc_info:
        validate_options({
            "url": "https://example.com/feed",
            "expected_update_period_in_days": 1,
            "basic_auth": "no-colon",
            "headers": ["not", "a", "hash"],
        })

    assert set(exc_info.value.errors) == {
        "headers must be a hash",
        "basic_auth must be 'user:pass' or [user, pass]",
    }


def test_transport_flags():
    options = validate_options({
        "url": "https://example.com/feed",
        "expected_update_period_in_days": 1,
        "headers": {"Accept-Language": "en"},
        "disable_ssl_verification": "true",
        "disable_url_encoding": True,
        "force_encoding": "ISO-8859-1",
        "user_agent": "Bot/1.0",
    })

    assert options.headers == {"Accept-Language": "en"}
    assert options.disable_ssl_verification is True
    assert options.disable_url_encoding is True
    assert options.force_encoding == "ISO-8859-1"
    assert options.user_agent == "Bot/1.0"


def test_validation_error_is_value_error():
    error = ValidationError(["a", "b"])

    assert isinstance(error, ValueError)
    assert str(error) == "a; b"


def test_load_options(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"url": "https://example.com/feed"}))

    assert load_options(path) == {"url": "https://example.com/feed"}


def test_load_options_requires_object(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("[1, 2]")

    with pytest.raises(ValidationError):
        load_options(path)
