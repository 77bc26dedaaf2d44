from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/liveness")
async def liveness():
    # 进程活着就算 OK（给 k8s/ALB 用）
    return {"status": "ok"}


@router.get("/readiness")
async def readiness(request: Request):
    # lifespan 跑完、缓存和 http client 都建好才算就绪
    state = request.app.state
    if getattr(state, "http_client", None) is None or getattr(state, "weather_cache", None) is None:
        return {"status": "starting"}
    return {"status": "ok", "cache": state.weather_cache.get_stats()}
