"""Test configuration ensuring local package import when editable install not active.

Also provides an in-memory stand-in for Connection that serves canned JSON
bodies and records every request it receives.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeConnection:
    def __init__(self):
        self.calls: list[tuple[str, str, dict | None, bytes | None]] = []
        self._routes: dict[str, list] = {}

    def respond(self, path: str, *payloads):
        """Queues JSON payloads for a path; the last one repeats once the queue drains."""
        self._routes.setdefault(path, []).extend(payloads)

    def _next(self, path: str) -> bytes:
        queue = self._routes.get(path)
        if not queue:
            raise AssertionError(f"unexpected request to {path}")
        payload = queue.pop(0) if len(queue) > 1 else queue[0]
        return json.dumps(payload).encode()

    def get(self, path, params=None):
        self.calls.append(("GET", path, dict(params) if params else None, None))
        return self._next(path)

    def post(self, path, body):
        self.calls.append(("POST", path, None, body))
        return self._next(path)

    def put(self, path, body):
        self.calls.append(("PUT", path, None, body))
        return self._next(path)

    def requests_to(self, path):
        return [c for c in self.calls if c[1] == path]


@pytest.fixture
def conn():
    return FakeConnection()


def make_bug(bug_id: int, **fields) -> dict:
    data = {"id": bug_id, "summary": f"Bug {bug_id}", "status": "REPORTED"}
    data.update(fields)
    return data


def history_event(when: str, *changes: tuple[str, str, str]) -> dict:
    return {
        "when": when,
        "who": "tester@example.org",
        "changes": [{"field_name": f, "removed": r, "added": a} for f, r, a in changes],
    }


def comment(cid: int, created: str, text: str = "") -> dict:
    return {"id": cid, "creation_time": created, "time": created, "text": text, "creator": "tester@example.org"}
