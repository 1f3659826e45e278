"""HTTP transport for feed documents, built on httpx."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
TIMEOUT_ENV_VAR = "RSS_AGENT_TIMEOUT"
try:
    _VERSION = version("rss-agent")
except PackageNotFoundError:
    _VERSION = "0.0.0"

DEFAULT_USER_AGENT = f"rss-agent/{_VERSION} (httpx)"
DEFAULT_ACCEPT = (
    "application/rss+xml, application/atom+xml;q=0.9, application/xml;q=0.8, */*;q=0.5"
)
URL_SAFE_CHARS = ":/?#[]@!$&'()*+,;=%~"


class TransportError(Exception):
    """Raised when a feed URL cannot be fetched."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        self.message = message


@dataclass
class FetchResult:
    """Body of a successful feed fetch."""

    url: str
    status_code: int
    body: bytes
    content_type: str | None = None


class FeedFetcher:
    """Fetch feed documents with the request options of one agent.

    Args:
        headers: Extra request headers.
        basic_auth: ``(username, password)`` pair, already validated.
        disable_ssl_verification: Skip TLS certificate checks.
        disable_url_encoding: Send the URL exactly as configured.
        force_encoding: Charset that overrides the one declared by the server.
        user_agent: User-Agent header value.
        timeout: Seconds before a request is abandoned.
        client: Pre-built httpx client, mainly for tests.
    """

    def __init__(
        self,
        *,
        headers: Mapping[str, str] | None = None,
        basic_auth: tuple[str, str] | None = None,
        disable_ssl_verification: bool = False,
        disable_url_encoding: bool = False,
        force_encoding: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ):
        self.disable_url_encoding = disable_url_encoding
        self.force_encoding = force_encoding
        self._headers = _build_headers(headers, user_agent)
        self._timeout = _resolve_timeout(timeout)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            headers=self._headers,
            auth=basic_auth,
            verify=not disable_ssl_verification,
            timeout=self._timeout,
            follow_redirects=True,
        )

    @classmethod
    def from_options(cls, options, client: httpx.Client | None = None) -> "FeedFetcher":
        """Build a fetcher from validated AgentOptions."""
        return cls(
            headers=options.headers,
            basic_auth=options.basic_auth,
            disable_ssl_verification=options.disable_ssl_verification,
            disable_url_encoding=options.disable_url_encoding,
            force_encoding=options.force_encoding,
            user_agent=options.user_agent,
            client=client,
        )

    def fetch(self, url: str) -> FetchResult:
        """GET a feed URL.

        Raises:
            TransportError: On a non-success status or any httpx failure.
        """
        try:
            request_url = url if self.disable_url_encoding else _encode_url(url)
            response = self._client.get(request_url, headers=self._headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(url, f"Failed to fetch {url}: {e}") from e

        if not response.is_success:
            raise TransportError(
                url, f"Failed to fetch {url}: HTTP {response.status_code} {response.reason_phrase}"
            )

        body = response.content
        content_type = response.headers.get("content-type")
        if self.force_encoding:
            mime = (content_type or "application/xml").split(";", 1)[0].strip()
            content_type = f"{mime}; charset={self.force_encoding}"
        elif content_type and content_type.startswith("text/") and "charset" not in content_type:
            # text/* without a charset is read as UTF-8, not US-ASCII
            content_type = f"{content_type}; charset=utf-8"

        logger.debug("Fetched %s (%d bytes)", url, len(body))
        return FetchResult(
            url=url,
            status_code=response.status_code,
            body=body,
            content_type=content_type,
        )

    def close(self) -> None:
        """Release the underlying client if this fetcher created it."""
        if self._owns_client:
            self._client.close()


def _encode_url(url: str) -> str:
    """Percent-encode characters that are not legal in a URL, keeping existing escapes."""
    return quote(url, safe=URL_SAFE_CHARS)


def _build_headers(headers: Mapping[str, str] | None, user_agent: str | None) -> dict[str, str]:
    combined = {"User-Agent": DEFAULT_USER_AGENT, "Accept": DEFAULT_ACCEPT}
    if user_agent:
        combined["User-Agent"] = user_agent
    if headers:
        combined.update({str(key): str(value) for key, value in headers.items()})
    return combined


def _resolve_timeout(timeout: float | None) -> float:
    if timeout is not None:
        return float(timeout)
    raw_value = os.getenv(TIMEOUT_ENV_VAR)
    if not raw_value:
        return DEFAULT_TIMEOUT
    try:
        return float(raw_value)
    except ValueError:
        logger.warning("Ignoring invalid %s value %r", TIMEOUT_ENV_VAR, raw_value)
        return DEFAULT_TIMEOUT
