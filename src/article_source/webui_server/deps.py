from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from ..engine import SyncEngine
from .settings import WebUISettings


@dataclass(frozen=True)
class Services:
    settings: WebUISettings
    engine: SyncEngine


def require_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Web UI services are not initialized.")
    return services
