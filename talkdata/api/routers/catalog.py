"""
GET /schema, GET /schema/cache/stats, POST /schema/cache/clear -- schema discovery.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from talkdata.api.routers.query import get_service
from talkdata.copilot.service import QueryService

router = APIRouter()


class CatalogCacheStats(BaseModel):
    enabled: bool
    cached: bool
    age_seconds: float | None
    ttl_seconds: float
    hits: int
    misses: int
    hit_rate: float


@router.get("/schema")
def get_schema(service: QueryService = Depends(get_service)) -> dict:
    """Return ``{table: [{name, type}, ...]}`` for every user table."""
    return service.schema().to_dict()


@router.get("/schema/cache/stats", response_model=CatalogCacheStats)
def schema_cache_stats(service: QueryService = Depends(get_service)):
    """Return schema catalog cache statistics."""
    return CatalogCacheStats(**service.catalog.cache.stats())


@router.post("/schema/cache/clear")
def schema_cache_clear(service: QueryService = Depends(get_service)):
    """Drop the cached catalog so the next request re-reads the database."""
    return {"cleared": service.catalog.invalidate()}
