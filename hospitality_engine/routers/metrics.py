"""
Metrics Router - Prometheus scrape endpoint
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from ..utils.metrics import format_prometheus_metrics

router = APIRouter(prefix="/metrics", tags=["Metrics"])


@router.get("")
@router.get("/")
async def get_metrics():
    return PlainTextResponse(
        content=format_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
