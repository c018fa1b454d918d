from __future__ import annotations

from typing import Any, Iterator, Mapping

import pytest

from article_source.api_client import Action
from article_source.engine import SyncEngine
from article_source.hashtag_library import MemoryHashtagLibrary

SAMPLE_ROWS: list[dict[str, Any]] = [
    {
        "rowNumber": 2,
        "Document Title": "Vision Setup",
        "Link (EN)": "https://example.com/vision",
        "Slug (EN)": "vision-setup",
        "Main Category": "TM AI VISION",
        "Sub Category": "Positioning Guideline",
        "Date": "2024-3-5",
        "LinkedIn": "yes",
        "Hashtags": "#vision, #setup",
        "views": "120",
    },
    {
        "rowNumber": 3,
        "Document Title": "Welding Basics",
        "Link (EN)": "https://example.com/weld",
        "Slug (EN)": "welding-basics",
        "Main Category": "ADVANCED FEATURES",
        "Sub Category": "TM Welding Solution",
        "Date": "2024-05-20",
        "LinkedIn": "No",
        "Hashtags": "#welding;#howto",
        "views": 40,
    },
    {
        "rowNumber": 4,
        "Document Title": "Release 2.0",
        "Link (EN)": "https://example.com/r2",
        "Slug (EN)": "release-2",
        "Main Category": "RELEASE NOTES",
        "Sub Category": "-",
        "Date": "",
        "LinkedIn": "",
        "Hashtags": "",
        "views": 7,
    },
]


class FakeStore:
    """In-memory stand-in for the remote sheet endpoint."""

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows: Any = [dict(row) for row in (rows if rows is not None else SAMPLE_ROWS)]
        self.posts: list[tuple[Action, dict[str, Any]]] = []
        self.log: list[str] = []
        self.fetches = 0
        self.fetch_error: Exception | None = None
        self.post_error: Exception | None = None
        self.on_fetch = None

    def fetch_rows(self) -> Any:
        self.fetches += 1
        self.log.append("GET")
        if self.on_fetch is not None:
            self.on_fetch()
        if self.fetch_error is not None:
            raise self.fetch_error
        if not isinstance(self.rows, list):
            return self.rows
        return [dict(row) for row in self.rows]

    def post_action(self, action: Action | str, payload: Mapping[str, Any]) -> None:
        action = Action(action)
        body = dict(payload)
        self.posts.append((action, body))
        self.log.append("POST")
        if self.post_error is not None:
            raise self.post_error
        if action is Action.CREATE:
            next_row = max((int(row.get("rowNumber") or 0) for row in self.rows), default=1) + 1
            self.rows.append({**body, "rowNumber": next_row})
        elif action is Action.UPDATE:
            self.rows = [
                {**row, **body} if row.get("rowNumber") == body["rowNumber"] else row for row in self.rows
            ]
        else:
            self.rows = [row for row in self.rows if row.get("rowNumber") != body["rowNumber"]]


class ManualTimer:
    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, callback) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def library() -> MemoryHashtagLibrary:
    return MemoryHashtagLibrary()


@pytest.fixture
def engine(store: FakeStore, timers: ManualTimerFactory, library: MemoryHashtagLibrary) -> Iterator[SyncEngine]:
    built = SyncEngine(store, library, timer_factory=timers, clock=lambda: 1_700_000_000.0)
    yield built
    built.close()
