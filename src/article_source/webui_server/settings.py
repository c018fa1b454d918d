from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ..config import resolve_repo_path

DEFAULT_BASE_PATH = "/articles"
DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_BIND_PORT = 4830
DEFAULT_LOGS_DIR = "cache/webui/logs"
DEFAULT_TOP_LIMIT = 10


@dataclass(frozen=True)
class WebUISettings:
    bind_host: str
    bind_port: int
    base_path: str
    logs_dir: Path
    top_limit: int


def _normalize_base_path(raw: str) -> str:
    base = raw.strip() or DEFAULT_BASE_PATH
    if not base.startswith("/"):
        base = f"/{base}"
    return base.rstrip("/") or DEFAULT_BASE_PATH


def _int_env(name: str, default: int, *, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    value = int(raw)
    if min_val is not None and value < min_val:
        print(f"[webui] WARNING: {name}={value} is below minimum {min_val}, using {min_val}", flush=True)
        return min_val
    if max_val is not None and value > max_val:
        print(f"[webui] WARNING: {name}={value} is above maximum {max_val}, using {max_val}", flush=True)
        return max_val
    return value


def load_webui_settings() -> WebUISettings:
    bind_host = os.environ.get("WEB_BIND_HOST", DEFAULT_BIND_HOST).strip() or DEFAULT_BIND_HOST
    logs_raw = os.environ.get("WEB_LOGS_DIR", DEFAULT_LOGS_DIR).strip() or DEFAULT_LOGS_DIR
    return WebUISettings(
        bind_host=bind_host,
        bind_port=_int_env("WEB_BIND_PORT", DEFAULT_BIND_PORT, min_val=1, max_val=65535),
        base_path=_normalize_base_path(os.environ.get("WEB_BASE_PATH", DEFAULT_BASE_PATH)),
        logs_dir=resolve_repo_path(logs_raw),
        top_limit=_int_env("WEB_TOP_LIMIT", DEFAULT_TOP_LIMIT, min_val=1, max_val=500),
    )
