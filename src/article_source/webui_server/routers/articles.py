from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ...engine import SyncResult
from ...projection import ALL, FilterState, LinkedInFilter
from ..deps import Services, require_services
from ..schemas import ArticleWriteRequest, ConflictCheckRequest, HashtagRequest, SummaryRequest

router = APIRouter(tags=["articles"])


def _filter_state(q: str, category: str, linkedin: str, start: str, end: str) -> FilterState:
    return FilterState(
        term=q,
        category=category or ALL,
        linkedin=LinkedInFilter.parse(linkedin),
        start=start,
        end=end,
    )


def _result_payload(result: SyncResult) -> dict[str, Any]:
    return {
        "ok": result.ok,
        "status": result.status.value,
        "error": result.error,
        "record_count": result.record_count,
    }


@router.get("/articles")
async def list_articles(
    q: str = "",
    category: str = ALL,
    linkedin: str = "All",
    start: str = "",
    end: str = "",
    services: Services = Depends(require_services),
) -> dict[str, Any]:
    records = services.engine.project(_filter_state(q, category, linkedin, start, end))
    return {"items": [record.to_dict() for record in records], "total": len(services.engine.snapshot.records)}


@router.get("/articles/export")
async def export_articles(
    q: str = "",
    category: str = ALL,
    linkedin: str = "All",
    start: str = "",
    end: str = "",
    services: Services = Depends(require_services),
) -> Response:
    filename, text = services.engine.export_csv(_filter_state(q, category, linkedin, start, end))
    return Response(
        content=text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/articles/conflicts")
async def check_conflicts(
    payload: ConflictCheckRequest,
    services: Services = Depends(require_services),
) -> dict[str, Any]:
    axes = services.engine.check_conflicts(payload.fields, payload.exclude_identity)
    return {"conflict": bool(axes), "axes": [axis.value for axis in axes]}


@router.post("/articles")
async def create_article(
    payload: ArticleWriteRequest,
    services: Services = Depends(require_services),
) -> dict[str, Any]:
    result = await asyncio.to_thread(services.engine.create, payload.fields)
    return _result_payload(result)


@router.post("/articles/{identity_key:path}/linkedin")
async def toggle_linkedin(identity_key: str, services: Services = Depends(require_services)) -> dict[str, Any]:
    result = await asyncio.to_thread(services.engine.toggle_linkedin, identity_key)
    return _result_payload(result)


@router.put("/articles/{identity_key:path}")
async def update_article(
    identity_key: str,
    payload: ArticleWriteRequest,
    services: Services = Depends(require_services),
) -> dict[str, Any]:
    result = await asyncio.to_thread(services.engine.update, identity_key, payload.fields)
    return _result_payload(result)


@router.delete("/articles/{identity_key:path}")
async def delete_article(identity_key: str, services: Services = Depends(require_services)) -> dict[str, Any]:
    result = await asyncio.to_thread(services.engine.delete, identity_key)
    return _result_payload(result)


@router.post("/hashtags")
async def add_hashtag(payload: HashtagRequest, services: Services = Depends(require_services)) -> dict[str, Any]:
    return {"items": await asyncio.to_thread(services.engine.add_hashtag, payload.tag)}


@router.delete("/hashtags")
async def remove_hashtag(tag: str, services: Services = Depends(require_services)) -> dict[str, Any]:
    return {"items": await asyncio.to_thread(services.engine.remove_hashtag, tag)}


@router.post("/summary")
async def suggest_summary(payload: SummaryRequest, services: Services = Depends(require_services)) -> dict[str, Any]:
    summary = await asyncio.to_thread(services.engine.suggest_summary, payload.link)
    return {"available": summary is not None, "summary": summary}
