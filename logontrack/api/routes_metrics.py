from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics(request: Request):
    # the registry pinned on app.state, not the process-global default
    sm = getattr(request.app.state, "logontrack_metrics", None)
    reg = sm["registry"] if isinstance(sm, dict) and "registry" in sm else REGISTRY
    return Response(content=generate_latest(reg), media_type=CONTENT_TYPE_LATEST)
