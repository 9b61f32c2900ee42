# bugzillabot/records.py
"""
Value types for Bugzilla JSON payloads and the functions decoding response
bodies into them. Bugzilla's schema is open ended (custom fields show up as
cf_*), so records keep every field they were given and add typed accessors
for the handful of fields this library relies on.
"""
import json
from datetime import datetime, timezone

from .errors import DecodeError


def parse_time(value, field: str = "time") -> datetime:
    """Parses Bugzilla's ISO-8601 timestamps ("2018-03-04T05:06:07Z") into aware datetimes."""
    if not isinstance(value, str):
        raise DecodeError(f"Expected an ISO-8601 string for '{field}', got {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise DecodeError(f"Invalid timestamp for '{field}': {value!r}") from None
    if parsed.tzinfo is None:
        # Bugzilla always reports UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_time(value: datetime) -> str:
    if value.tzinfo is None:
        # Same reading as parse_time: naive means UTC, not local time.
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def load_json(body) -> dict:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from None
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def require(data, key, path: str):
    """Fetches a required key, failing loudly instead of substituting a default."""
    if not isinstance(data, dict) or key not in data:
        raise DecodeError(f"Missing required field '{path}'")
    return data[key]


def _require_list(data, key, path: str) -> list:
    value = require(data, key, path)
    if not isinstance(value, list):
        raise DecodeError(f"Expected '{path}' to be a list, got {type(value).__name__}")
    return value


class Record:
    """A bag of server-defined fields with attribute and item access."""

    def __init__(self, data: dict):
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object for {type(self).__name__}, got {data!r}")
        self._data = dict(data)

    def __setattr__(self, name, value):
        # Decoded fields are read-only; only internal slots may be assigned.
        if not name.startswith("_"):
            raise AttributeError(f"{type(self).__name__} is read-only, cannot set '{name}'")
        super().__setattr__(name, value)

    def __delattr__(self, name):
        if not name.startswith("_"):
            raise AttributeError(f"{type(self).__name__} is read-only, cannot delete '{name}'")
        super().__delattr__(name)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    def __getattr__(self, name):
        # Only called for names not found on the instance or class.
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no field '{name}'") from None

    def get(self, key, default=None):
        return self._data.get(key, default)

    def keys(self):
        return self._data.keys()

    def to_dict(self) -> dict:
        return dict(self._data)

    def __repr__(self):
        return f"{type(self).__name__}({self._data!r})"


class Change(Record):
    """One field mutation inside a history event."""

    def __init__(self, data: dict):
        super().__init__(data)
        require(self._data, "field_name", "changes[].field_name")

    @property
    def field_name(self) -> str:
        return self._data["field_name"]

    @property
    def removed(self):
        return self._data.get("removed")

    @property
    def added(self):
        return self._data.get("added")

    def is_status(self) -> bool:
        return self.field_name == "status"


class HistoryEvent(Record):
    """A set of changes Bugzilla recorded against a bug at one point in time."""

    def __init__(self, data: dict):
        super().__init__(data)
        self._when = parse_time(require(self._data, "when", "history[].when"), "when")
        self._changes = tuple(Change(x) for x in _require_list(self._data, "changes", "history[].changes"))

    @property
    def when(self) -> datetime:
        return self._when

    @property
    def changes(self) -> tuple:
        return self._changes

    def has_status_change(self) -> bool:
        return any(change.is_status() for change in self._changes)


class Comment(Record):
    """A comment on a bug. Immutable once decoded."""

    def __init__(self, data: dict):
        super().__init__(data)
        self._creation_time = parse_time(
            require(self._data, "creation_time", "comments[].creation_time"), "creation_time")

    @property
    def creation_time(self) -> datetime:
        return self._creation_time

    @property
    def time(self) -> datetime:
        """Deprecated alias of creation_time; the raw 'time' field is shadowed."""
        return self._creation_time


def decode_bugs(body, connection) -> list:
    """Decodes a {"bugs": [...]} response into Bug entities bound to the connection."""
    from .bug import Bug

    data = load_json(body)
    return [Bug(x, connection) for x in _require_list(data, "bugs", "bugs")]


def decode_history(body) -> tuple:
    data = load_json(body)
    bugs = _require_list(data, "bugs", "bugs")
    if not bugs:
        raise DecodeError("Missing required field 'bugs[0]'")
    return tuple(HistoryEvent(x) for x in _require_list(bugs[0], "history", "bugs[0].history"))


def decode_comments(body, bug_id) -> tuple:
    """Extracts the comments of one bug from a response keyed by bug id."""
    data = load_json(body)
    bugs = require(data, "bugs", "bugs")
    entry = require(bugs, str(bug_id), f"bugs.{bug_id}")
    return tuple(Comment(x) for x in _require_list(entry, "comments", f"bugs.{bug_id}.comments"))
