"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response

from visitrack.infrastructure.monitoring.metrics import METRICS_CONTENT_TYPE, generate_metrics

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    response_class=Response,
    responses={200: {"description": "Metrics in Prometheus format", "content": {"text/plain": {}}}},
)
async def get_metrics() -> Response:
    return Response(content=generate_metrics(), media_type=METRICS_CONTENT_TYPE)
