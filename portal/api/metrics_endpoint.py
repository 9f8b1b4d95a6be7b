"""Prometheus scrape endpoint.

Returns every registered metric in the text exposition format, e.g.:

  # HELP submissions_scored_total Submissions scored and persisted
  # TYPE submissions_scored_total counter
  submissions_scored_total 42.0

Keep this off the public ingress; request rates and rejection counts
describe how the portal is used.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
