# bugzillabot/bug.py
"""
Bug entity and the search engine producing it.

A Bug holds the fields Bugzilla returned plus lazily fetched, memoized views
(history, comments, when the status last changed). Nothing here writes back
into a Bug: after `update()` or `comment()` fetch a fresh instance to see the
result.

See https://bugzilla.readthedocs.io/en/5.0/api/core/v1/bug.html
"""
import json
import logging
from datetime import datetime
from typing import Callable, Optional

from .cache import CacheSlot
from .errors import DecodeError, PreconditionError
from .records import Record, decode_bugs, decode_comments, decode_history, format_time, load_json

logger = logging.getLogger(__name__)

# There is no one right value. 8 is sufficiently small not to break the
# remote, but large enough to not have to query too much.
DEFAULT_PAGE_SIZE = 8

PageHandler = Callable[[list], None]
ErrorHandler = Callable[["Bug", Exception], None]


class Bug(Record):

    def __init__(self, data: dict, connection):
        super().__init__(data)
        if "id" not in self._data:
            raise DecodeError("Missing required field 'bugs[].id'")
        self._connection = connection
        self._history = CacheSlot()
        self._comments = CacheSlot()
        self._changed_status_at = CacheSlot()
        self._comments_since_status_change = CacheSlot()

    @property
    def id(self) -> int:
        return self._data["id"]

    @property
    def status(self) -> Optional[str]:
        return self._data.get("status")

    @property
    def connection(self):
        return self._connection

    def __repr__(self):
        return f"Bug(id={self.id!r}, status={self.status!r})"

    # --- Derived views ---

    def history(self) -> tuple:
        """Complete history of this bug, oldest event first. Fetched once."""
        return self._history.resolve(self._query_history)

    def comments(self, new_since: datetime = None) -> tuple:
        """
        Comments of this bug, oldest first.
        With `new_since` only comments created at or after that time are
        fetched; such queries are never cached and never touch the full list.
        """
        if new_since is not None:
            return self._query_comments(new_since=format_time(new_since))
        return self._comments.resolve(self._query_comments)

    def changed_status_at(self) -> Optional[datetime]:
        """Time at which this bug last changed its 'status' field, or None."""
        return self._changed_status_at.resolve(self._find_status_change)

    def comments_since_status_change(self) -> tuple:
        """Comments created since the status last changed.

        Raises PreconditionError if the status never changed.
        """
        return self._comments_since_status_change.resolve(self._query_comments_since_status_change)

    def last_comment_at(self) -> Optional[datetime]:
        """Time at which the most recent comment was created."""
        comments = self.comments()
        if comments:
            return comments[-1].creation_time
        return None

    def refresh(self) -> None:
        """Forgets every derived view so the next access fetches again."""
        for slot in (self._history, self._comments, self._changed_status_at,
                     self._comments_since_status_change):
            slot.reset()

    # --- Mutations ---

    def update(self, **fields) -> dict:
        """
        Takes any arguments of the update-bug API.
        This does not update the Bug object; `get` a new instance to see the change.
        """
        body = self._connection.put(f"bug/{self.id}", json.dumps(fields).encode("utf-8"))
        return load_json(body)

    def comment(self, body: str, **fields) -> dict:
        """
        Creates a new comment on the bug. `fields` are any other arguments of
        the add-comment API (is_private, work_time, ...).
        This does not update the Bug object or its cached comments.
        """
        payload = {"comment": body}
        payload.update(fields)
        res = self._connection.post(f"bug/{self.id}/comment", json.dumps(payload).encode("utf-8"))
        return load_json(res)

    # --- Loaders ---

    def _query_history(self) -> tuple:
        res = self._connection.get(f"bug/{self.id}/history")
        return decode_history(res)

    def _query_comments(self, **params) -> tuple:
        res = self._connection.get(f"bug/{self.id}/comment", params or None)
        return decode_comments(res, self.id)

    def _find_status_change(self) -> Optional[datetime]:
        for event in reversed(self.history()):
            if event.has_status_change():
                return event.when
        return None

    def _query_comments_since_status_change(self) -> tuple:
        changed_at = self.changed_status_at()
        if changed_at is None:
            raise PreconditionError(f"Bug {self.id} has no recorded status change")
        return self.comments(new_since=changed_at)

    # --- Queries ---

    @classmethod
    def get(cls, id_or_alias, connection) -> "Bug":
        """Fetches a single bug by id or alias."""
        res = connection.get(f"bug/{id_or_alias}")
        bugs = decode_bugs(res, connection)
        if not bugs:
            raise DecodeError(f"Server returned no bug for '{id_or_alias}'")
        return bugs[0]

    @classmethod
    def get_many(cls, bug_ids: list, connection, include_fields: list = None) -> list:
        """Fetches several bugs in one request, in the order the server returns them."""
        if not bug_ids:
            return []
        params = {"id": ",".join(map(str, bug_ids))}
        if include_fields:
            params["include_fields"] = ",".join(include_fields)
        return decode_bugs(connection.get("bug", params), connection)

    @classmethod
    def search(cls, params: dict, connection, on_page: PageHandler = None, *,
               page_size: int = DEFAULT_PAGE_SIZE, resolve: bool = False,
               on_error: ErrorHandler = None) -> Optional[list]:
        """
        Searches bugs. Takes any arguments of the search API.

        The search is automatically paginated iff `on_page` is given and
        `params` has neither `offset` nor `limit`. Each page (a list of bugs,
        in server order) is then passed to `on_page` and nothing is returned,
        so only one page is held in memory at a time.

        Otherwise a single request is made with `params` as given and the
        full result list is returned (and passed to `on_page`, if any).

        With `resolve` every bug has its history and comments since the last
        status change fetched before it is handed out. A bug whose status
        never changed is reported to `on_error` (or logged) without stopping
        the rest of the page.
        """
        if on_page is not None and "offset" not in params and "limit" not in params:
            cls._paginate(params, connection, on_page, page_size, resolve, on_error)
            return None
        return cls._search_once(params, connection, on_page, resolve, on_error)

    @classmethod
    def _paginate(cls, params, connection, on_page, page_size, resolve, on_error) -> None:
        limit = params.get("limit", page_size)
        offset = 0
        while True:
            args = dict(params, limit=limit, offset=offset)
            bugs = cls._search_once(args, connection, None, resolve, on_error)
            if not bugs:
                break
            logger.debug("Page at offset %d has %d bugs", offset, len(bugs))
            on_page(bugs)
            offset += limit

    @classmethod
    def _search_once(cls, params, connection, on_page, resolve, on_error) -> list:
        res = connection.get("bug", params)
        bugs = decode_bugs(res, connection)
        if resolve:
            for bug in bugs:
                _resolve(bug, on_error)
        if on_page is not None:
            on_page(bugs)
        return bugs


def _resolve(bug: Bug, on_error: ErrorHandler = None) -> None:
    """Populates the derived views of a bug ahead of use."""
    bug.history()
    try:
        bug.comments_since_status_change()
    except PreconditionError as e:
        # The failure stays in the bug's cache and is raised again on access.
        if on_error is not None:
            on_error(bug, e)
        else:
            logger.warning("Could not resolve bug %s: %s", bug.id, e)
