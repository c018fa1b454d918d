from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Protocol

from .errors import PersistenceError


class HashtagLibraryStore(Protocol):
    def load(self) -> list[str] | None: ...

    def save(self, tags: Iterable[str]) -> None: ...


class JsonHashtagLibrary:
    """Hashtag library persisted as a single JSON array file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[str] | None:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read hashtag library '{self.path}': {exc}") from exc
        if not isinstance(raw, list):
            raise PersistenceError(f"Hashtag library '{self.path}' must be a JSON array.")
        return [item for item in raw if isinstance(item, str) and item.strip()]

    def save(self, tags: Iterable[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(list(tags), ensure_ascii=False), encoding="utf-8")


class MemoryHashtagLibrary:
    def __init__(self, tags: Iterable[str] | None = None) -> None:
        self.tags: list[str] | None = list(tags) if tags is not None else None
        self.saves = 0

    def load(self) -> list[str] | None:
        return list(self.tags) if self.tags is not None else None

    def save(self, tags: Iterable[str]) -> None:
        self.tags = list(tags)
        self.saves += 1
