from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Query

from ... import _read_version
from ...overview import category_counts, top_by_views, total_views
from ..deps import Services, require_services

router = APIRouter(tags=["meta"])


@router.get("/health")
async def health(services: Services = Depends(require_services)) -> dict[str, Any]:
    return {"ok": True, "base_path": services.settings.base_path, "version": _read_version()}


@router.get("/sync")
async def get_sync_status(services: Services = Depends(require_services)) -> dict[str, Any]:
    return services.engine.describe()


@router.post("/sync")
async def post_sync(services: Services = Depends(require_services)) -> dict[str, Any]:
    result = await asyncio.to_thread(services.engine.refresh)
    return {
        "ok": result.ok,
        "status": result.status.value,
        "error": result.error,
        "record_count": result.record_count,
        "joined": result.joined,
    }


@router.get("/vocabulary")
async def get_vocabulary(services: Services = Depends(require_services)) -> dict[str, Any]:
    snapshot = services.engine.snapshot
    return {
        "headers": list(snapshot.headers),
        "aliases": snapshot.aliases.as_dict(),
        "categories": snapshot.categories.as_dict(),
        "unfiled_sub_categories": list(snapshot.categories.unfiled),
        "hashtags": list(snapshot.hashtags),
    }


@router.get("/overview")
async def get_overview(
    start: str = "",
    end: str = "",
    limit: int | None = Query(default=None, ge=1, le=500),
    services: Services = Depends(require_services),
) -> dict[str, Any]:
    snapshot = services.engine.snapshot
    top = top_by_views(snapshot.records, limit or services.settings.top_limit, start, end)
    return {
        "total_articles": len(snapshot.records),
        "total_views": total_views(snapshot.records, start, end),
        "categories": category_counts(snapshot.records, snapshot.aliases),
        "top": [record.to_dict() for record in top],
    }
