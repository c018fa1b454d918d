"""Sync orchestrator for the article catalog.

State machine::

    idle -> syncing -> success -> idle   (after success_reset_seconds)
                    -> error   -> idle   (after error_reset_seconds)

Read path: GET snapshot -> dedupe -> derive headers/categories/hashtags ->
publish.  Write path: validate -> POST -> read path, always, so local state
is whatever the store says after the attempt.  A failed GET leaves the last
published snapshot untouched.

Remote operations are serialized.  A refresh requested while another
refresh is waiting or running joins it; mutations queue behind whatever is
in flight.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Mapping, Protocol

from .aliases import ColumnAliases, Field
from .api_client import Action, StoreApiClient
from .config import env_or_config, resolve_catalog_name, resolve_repo_path, resolve_store_url
from .conflicts import conflict_message, detect_conflicts
from .dedup import dedupe, raw_columns
from .errors import CatalogError, PersistenceError, ShapeError, ValidationError
from .hashtag_library import HashtagLibraryStore, JsonHashtagLibrary, MemoryHashtagLibrary
from .normalizer import ROW_NUMBER_KEYS, Record, normalize_date, normalize_linkedin
from .projection import FilterState, export_filename, filter_records, to_csv
from .summarizer import LinkSummarizer, build_summarizer
from .vocabulary import (
    CategoryVocabulary,
    DEFAULT_HASHTAGS,
    derive_categories,
    derive_hashtags,
    derive_headers,
    normalize_hashtag,
)

logger = logging.getLogger(__name__)

DRAFT_INTERNAL_KEYS = frozenset({"id", "identityKey", "displayDate", "createdAt"})

TimerFactory = Callable[[float, Callable[[], None]], Any]


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class StoreClient(Protocol):
    def fetch_rows(self) -> list[dict[str, Any]]: ...

    def post_action(self, action: Action | str, payload: Mapping[str, Any]) -> None: ...


@dataclass(frozen=True)
class CatalogSnapshot:
    records: tuple[Record, ...] = ()
    headers: tuple[str, ...] = ()
    aliases: ColumnAliases = field(default_factory=ColumnAliases.defaults)
    categories: CategoryVocabulary = field(
        default_factory=lambda: derive_categories((), ColumnAliases.defaults())
    )
    hashtags: tuple[str, ...] = tuple(sorted(DEFAULT_HASHTAGS))
    fetched_at: float | None = None

    def find(self, identity_key: str) -> Record | None:
        for record in self.records:
            if record.identity_key == identity_key:
                return record
        return None


@dataclass(frozen=True)
class SyncResult:
    ok: bool
    status: SyncStatus
    error: str | None = None
    record_count: int = 0
    joined: bool = False


class SyncEngine:
    def __init__(
        self,
        client: StoreClient,
        library: HashtagLibraryStore | None = None,
        *,
        summarizer: LinkSummarizer | None = None,
        catalog_name: str = "TM_Articles",
        success_reset_seconds: float = 1.0,
        error_reset_seconds: float = 2.0,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.library = library if library is not None else MemoryHashtagLibrary()
        self.summarizer = summarizer
        self.catalog_name = catalog_name
        self.success_reset_seconds = success_reset_seconds
        self.error_reset_seconds = error_reset_seconds
        self._timer_factory = timer_factory
        self._clock = clock

        self._state_lock = threading.Lock()
        self._op_lock = threading.Lock()
        self._status = SyncStatus.IDLE
        self._last_error: str | None = None
        self._generation = 0
        self._reset_timer: Any = None
        self._pending_refresh: Future[SyncResult] | None = None

        self._library_tags = self._load_library()
        aliases = ColumnAliases.defaults()
        self._snapshot = CatalogSnapshot(
            aliases=aliases,
            hashtags=tuple(derive_hashtags((), self._library_tags, aliases)),
        )

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        with self._state_lock:
            return self._status

    @property
    def snapshot(self) -> CatalogSnapshot:
        with self._state_lock:
            return self._snapshot

    @property
    def last_error(self) -> str | None:
        with self._state_lock:
            return self._last_error

    def describe(self) -> dict[str, Any]:
        with self._state_lock:
            return {
                "status": self._status.value,
                "last_error": self._last_error,
                "record_count": len(self._snapshot.records),
                "fetched_at": self._snapshot.fetched_at,
            }

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _set_status(self, status: SyncStatus, error: str | None = None) -> None:
        with self._state_lock:
            if self._reset_timer is not None:
                self._reset_timer.cancel()
                self._reset_timer = None
            self._generation += 1
            self._status = status
            if status is SyncStatus.ERROR:
                self._last_error = error
            elif status is SyncStatus.SUCCESS:
                self._last_error = None
            if status in (SyncStatus.SUCCESS, SyncStatus.ERROR):
                delay = self.success_reset_seconds if status is SyncStatus.SUCCESS else self.error_reset_seconds
                generation = self._generation
                timer = self._timer_factory(delay, lambda: self._reset_to_idle(generation))
                timer.daemon = True
                self._reset_timer = timer
                timer.start()

    def _reset_to_idle(self, generation: int) -> None:
        with self._state_lock:
            if self._generation != generation:
                return
            self._generation += 1
            self._status = SyncStatus.IDLE
            self._reset_timer = None

    def close(self) -> None:
        with self._state_lock:
            if self._reset_timer is not None:
                self._reset_timer.cancel()
                self._reset_timer = None

    # ------------------------------------------------------------------
    # Hashtag library
    # ------------------------------------------------------------------

    def _load_library(self) -> list[str] | None:
        try:
            return self.library.load()
        except PersistenceError as exc:
            logger.warning("ignoring persisted hashtag library: %s", exc)
            return None

    def _save_library(self, tags: list[str]) -> None:
        try:
            self.library.save(tags)
        except OSError as exc:
            logger.warning("hashtag library not saved: %s", exc)

    def _edit_hashtags(self, edit: Callable[[tuple[str, ...]], list[str] | None]) -> list[str]:
        # ``edit`` returns None when the library is already as requested.
        with self._state_lock:
            tags = edit(self._snapshot.hashtags)
            if tags is None:
                return list(self._snapshot.hashtags)
            self._library_tags = tags
            self._snapshot = replace(self._snapshot, hashtags=tuple(tags))
        self._save_library(tags)
        return tags

    def add_hashtag(self, text: str) -> list[str]:
        tag = normalize_hashtag(text)
        if tag is None:
            raise ValidationError("Hashtag is empty.")

        def add(current: tuple[str, ...]) -> list[str] | None:
            return None if tag in current else sorted({*current, tag})

        return self._edit_hashtags(add)

    def remove_hashtag(self, text: str) -> list[str]:
        tag = normalize_hashtag(text)
        if tag is None:
            return list(self.snapshot.hashtags)

        def remove(current: tuple[str, ...]) -> list[str] | None:
            return [item for item in current if item != tag] if tag in current else None

        return self._edit_hashtags(remove)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _publish(self, rows: list[Any]) -> CatalogSnapshot:
        aliases = ColumnAliases.resolve(raw_columns(rows))
        records = dedupe(rows, aliases)
        headers = derive_headers(records)
        categories = derive_categories(records, aliases)
        with self._state_lock:
            hashtags = derive_hashtags(records, self._library_tags, aliases)
            self._library_tags = hashtags
            snapshot = CatalogSnapshot(
                records=tuple(records),
                headers=tuple(headers),
                aliases=aliases,
                categories=categories,
                hashtags=tuple(hashtags),
                fetched_at=self._clock(),
            )
            self._snapshot = snapshot
        self._save_library(hashtags)
        return snapshot

    def _read_path(self) -> str | None:
        try:
            rows = self.client.fetch_rows()
            if not isinstance(rows, list):
                raise ShapeError(f"Store response is not an array (got {type(rows).__name__}).")
        except CatalogError as exc:
            logger.error("refresh failed: %s", exc)
            return str(exc) or exc.__class__.__name__
        try:
            snapshot = self._publish(rows)
        except (ArithmeticError, TypeError, ValueError) as exc:
            error = ShapeError(f"Store rows could not be normalized: {exc}")
            logger.error("refresh failed: %s", error)
            return str(error)
        logger.info(
            "refresh ok: rows=%d records=%d headers=%d",
            len(rows),
            len(snapshot.records),
            len(snapshot.headers),
        )
        return None

    def _finish(self, error: str | None) -> SyncResult:
        status = SyncStatus.ERROR if error else SyncStatus.SUCCESS
        self._set_status(status, error)
        return SyncResult(
            ok=error is None,
            status=status,
            error=error,
            record_count=len(self.snapshot.records),
        )

    def _guarded(self, operation: Callable[[], SyncResult]) -> SyncResult:
        self._set_status(SyncStatus.SYNCING)
        try:
            return operation()
        except BaseException as exc:
            self._set_status(SyncStatus.ERROR, f"{exc.__class__.__name__}: {exc}")
            raise

    def refresh(self) -> SyncResult:
        with self._state_lock:
            pending = self._pending_refresh
            if pending is None:
                pending = self._pending_refresh = Future()
                owner = True
            else:
                owner = False
        if not owner:
            return replace(pending.result(), joined=True)

        try:
            with self._op_lock:
                result = self._guarded(lambda: self._finish(self._read_path()))
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        finally:
            with self._state_lock:
                if self._pending_refresh is pending:
                    self._pending_refresh = None
        pending.set_result(result)
        return result

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _write(self, action: Action, build: Callable[[CatalogSnapshot], dict[str, Any]]) -> SyncResult:
        """Build, validate and send one mutation while holding the operation lock.

        ``build`` sees the snapshot published by the previous operation and may
        raise ``ValidationError``; nothing is posted in that case.
        """
        with self._op_lock:
            payload = build(self.snapshot)

            def run() -> SyncResult:
                write_error: str | None = None
                try:
                    self.client.post_action(action, payload)
                except CatalogError as exc:
                    write_error = f"{action.value} failed: {exc}"
                    logger.error("%s", write_error)
                read_error = self._read_path()
                return self._finish(write_error or read_error)

            return self._guarded(run)

    @staticmethod
    def prepare_draft(fields: Mapping[str, Any], aliases: ColumnAliases) -> dict[str, Any]:
        draft = {str(key): value for key, value in fields.items() if key not in DRAFT_INTERNAL_KEYS}
        date_column = aliases.column(Field.DATE)
        if date_column in draft:
            draft[date_column] = normalize_date(draft[date_column])
        linkedin_column = aliases.column(Field.LINKEDIN)
        if linkedin_column in draft:
            draft[linkedin_column] = normalize_linkedin(draft[linkedin_column])
        return draft

    def check_conflicts(self, fields: Mapping[str, Any], exclude_identity: str | None = None) -> list[Field]:
        snapshot = self.snapshot
        return detect_conflicts(fields, snapshot.records, snapshot.aliases, exclude_identity)

    def _validate(self, draft: Mapping[str, Any], snapshot: CatalogSnapshot, exclude_identity: str | None) -> None:
        if not snapshot.aliases.lookup(draft, Field.TITLE).strip():
            raise ValidationError("Title is required.")
        axes = detect_conflicts(draft, snapshot.records, snapshot.aliases, exclude_identity)
        if axes:
            raise ValidationError(conflict_message(axes), conflicts=axes)

    def _require_remote(self, snapshot: CatalogSnapshot, identity_key: str) -> Record:
        record = snapshot.find(identity_key)
        if record is None:
            raise ValidationError(f"Unknown record '{identity_key}'.")
        if record.row_number is None:
            raise ValidationError(f"Record '{identity_key}' has no remote row.")
        return record

    def create(self, fields: Mapping[str, Any]) -> SyncResult:
        def build(snapshot: CatalogSnapshot) -> dict[str, Any]:
            draft = self.prepare_draft(fields, snapshot.aliases)
            for key in ROW_NUMBER_KEYS:
                draft.pop(key, None)
            self._validate(draft, snapshot, exclude_identity=None)
            return draft

        return self._write(Action.CREATE, build)

    def update(self, identity_key: str, fields: Mapping[str, Any]) -> SyncResult:
        return self._write(Action.UPDATE, lambda snapshot: self._update_draft(snapshot, identity_key, fields))

    def _update_draft(
        self,
        snapshot: CatalogSnapshot,
        identity_key: str,
        fields: Mapping[str, Any],
        *,
        validate: bool = True,
    ) -> dict[str, Any]:
        record = self._require_remote(snapshot, identity_key)
        draft = self.prepare_draft({**record.to_row(), **fields}, snapshot.aliases)
        for key in ROW_NUMBER_KEYS:
            draft.pop(key, None)
        draft["rowNumber"] = record.row_number
        if validate:
            self._validate(draft, snapshot, exclude_identity=identity_key)
        return draft

    def toggle_linkedin(self, identity_key: str) -> SyncResult:
        def build(snapshot: CatalogSnapshot) -> dict[str, Any]:
            record = self._require_remote(snapshot, identity_key)
            flipped = "No" if record.linkedin == "Yes" else "Yes"
            column = snapshot.aliases.column(Field.LINKEDIN)
            return self._update_draft(snapshot, identity_key, {column: flipped}, validate=False)

        return self._write(Action.UPDATE, build)

    def delete(self, identity_key: str) -> SyncResult:
        def build(snapshot: CatalogSnapshot) -> dict[str, Any]:
            return {"rowNumber": self._require_remote(snapshot, identity_key).row_number}

        return self._write(Action.DELETE, build)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def project(self, state: FilterState | None = None) -> list[Record]:
        snapshot = self.snapshot
        return filter_records(snapshot.records, state or FilterState(), snapshot.aliases)

    def export_csv(self, state: FilterState | None = None) -> tuple[str, str]:
        """Return ``(filename, csv_text)`` for the filtered projection."""
        snapshot = self.snapshot
        records = filter_records(snapshot.records, state or FilterState(), snapshot.aliases)
        return export_filename(self.catalog_name), to_csv(records, snapshot.headers)

    def suggest_summary(self, link: str) -> str | None:
        link = str(link or "").strip()
        if self.summarizer is None or not link.lower().startswith("http"):
            return None
        try:
            return self.summarizer.summarize(link)
        except Exception as exc:
            logger.warning("summary suggestion failed for %s: %s", link, exc)
            return None


def build_engine(*, client: StoreClient | None = None, timer_factory: TimerFactory = threading.Timer) -> SyncEngine:
    if client is None:
        client = StoreApiClient(
            resolve_store_url(required=True),
            timeout_seconds=float(env_or_config("CATALOG_STORE_TIMEOUT", "store.timeout_seconds", 30, float)),
            retries=int(env_or_config("CATALOG_STORE_RETRIES", "store.retries", 2, int)),
            backoff_seconds=float(env_or_config("CATALOG_STORE_BACKOFF", "store.backoff_seconds", 0.4, float)),
        )
    library_file = env_or_config("HASHTAG_LIBRARY_FILE", "catalog.hashtag_library", "cache/hashtag_library.json")
    return SyncEngine(
        client,
        JsonHashtagLibrary(resolve_repo_path(library_file)),
        summarizer=build_summarizer(),
        catalog_name=resolve_catalog_name(),
        success_reset_seconds=float(env_or_config("SYNC_SUCCESS_RESET_SECONDS", "sync.success_reset_seconds", 1.0, float)),
        error_reset_seconds=float(env_or_config("SYNC_ERROR_RESET_SECONDS", "sync.error_reset_seconds", 2.0, float)),
        timer_factory=timer_factory,
    )
