# bugzillabot/connection.py
import logging
import re
import sys

import requests

from .config import Settings
from .errors import TransportError

logger = logging.getLogger(__name__)

# Bugzilla 5.0 reads the key from the query string, 6.0 also from the header.
API_KEY_PARAM = "Bugzilla_api_key"
API_KEY_HEADER = "X-BUGZILLA-API-KEY"

_REDACTIONS = (
    (re.compile(r"(Bugzilla_api_key=)([^&\s'\"]+)"), r"\1[REMOVED]"),
    (re.compile(r"(X-BUGZILLA-API-KEY['\"]?:\s*['\"]?)([\w-]+)", re.IGNORECASE), r"\1[REMOVED]"),
)


def redact(text: str) -> str:
    """Strips API keys from anything that is about to be logged."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


_stdout_handler = None


def enable_logging(level: int = logging.DEBUG) -> None:
    """Prints request/response logging of this package to stdout. Safe to call repeatedly."""
    global _stdout_handler
    package_logger = logging.getLogger("bugzillabot")
    if _stdout_handler is None:
        _stdout_handler = logging.StreamHandler(sys.stdout)
        _stdout_handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    if _stdout_handler not in package_logger.handlers:
        package_logger.addHandler(_stdout_handler)
    package_logger.setLevel(level)


class Connection:
    """Wraps HTTP interactions with one Bugzilla REST endpoint.

    Resolves paths against the base URL, injects the API key and JSON headers,
    and turns every `requests` failure into a TransportError. Bodies come back
    as raw bytes; decoding them is up to the caller.
    """

    def __init__(self, url: str, api_key: str = None, timeout: float = 30.0,
                 session: requests.Session = None):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_settings(cls, settings: Settings):
        """Builds a connection for the profile selected in the settings."""
        if settings.debug:
            enable_logging()
        logger.info("Using %s profile at %s", settings.profile, settings.url)
        return cls(url=settings.url, api_key=settings.api_key, timeout=settings.timeout)

    def get(self, path: str, params: dict = None) -> bytes:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: bytes) -> bytes:
        return self.request("POST", path, data=body)

    def put(self, path: str, body: bytes) -> bytes:
        return self.request("PUT", path, data=body)

    def request(self, method: str, path: str, params: dict = None, data: bytes = None) -> bytes:
        url = f"{self.url}/{path.lstrip('/')}"
        query = dict(params or {})
        if self.api_key:
            query[API_KEY_PARAM] = self.api_key

        try:
            response = self.session.request(method, url, params=query, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            # Network errors carry the full URL, api key included.
            raise TransportError(redact(f"{method} {url} failed: {e}"), url=url) from None

        logged_url = redact(response.url or url)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s %s -> %s", method, logged_url, response.status_code)
            if data:
                logger.debug("request body: %s", redact(data.decode("utf-8", "replace")))
            logger.debug("response body: %s", redact(response.text[:2000]))

        try:
            response.raise_for_status()  # Raises an exception for 4xx/5xx errors
        except requests.exceptions.HTTPError:
            message = f"{method} {logged_url} failed with status {response.status_code}"
            try:
                # Bugzilla reports errors as {"error": true, "message": ...}
                payload = response.json()
                detail = payload.get("message") if isinstance(payload, dict) else None
                if detail:
                    message = f"{message}: {detail}"
            except ValueError:
                message = f"{message}: {response.text[:200]}"
            raise TransportError(message, status=response.status_code, url=logged_url) from None

        return response.content
