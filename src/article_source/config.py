from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"
CONFIG_FILE = REPO_ROOT / "configs" / "config.json"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on", "y"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", "n", ""})
_MISSING = object()


def load_env_file(path: Path | str = ENV_FILE) -> None:
    """Seed os.environ from a KEY=VALUE file without overriding existing values."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key and key not in os.environ:
            os.environ[key] = value


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


@lru_cache(maxsize=None)
def _load_config(path: str) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[warn] Ignoring unreadable config file '{config_path}': {exc}", flush=True)
        return {}
    return data if isinstance(data, dict) else {}


def reload_config() -> None:
    _load_config.cache_clear()


def config_value(dotted_path: str, default: Any = None) -> Any:
    node: Any = _load_config(str(CONFIG_FILE))
    for part in dotted_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def env_or_config(
    env_key: str,
    config_path: str,
    default: Any = None,
    cast: Callable[[Any], Any] | None = None,
) -> Any:
    raw = os.environ.get(env_key)
    if raw is not None and raw.strip() != "":
        value: Any = raw.strip()
    else:
        value = config_value(config_path, _MISSING)
        if value is _MISSING or value is None:
            return default
    if cast is None:
        return value
    return cast(value)


def resolve_repo_path(path: Path | str) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return REPO_ROOT / candidate


def resolve_store_url(required: bool = False) -> str:
    url = str(env_or_config("CATALOG_STORE_URL", "store.url", "")).strip()
    if required and not url:
        raise RuntimeError("CATALOG_STORE_URL is empty. Set it in .env, the environment, or configs/config.json.")
    return url


def resolve_catalog_name() -> str:
    return str(env_or_config("CATALOG_NAME", "catalog.name", "TM_Articles")).strip() or "TM_Articles"
