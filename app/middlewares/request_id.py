from __future__ import annotations

import uuid

from fastapi import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
# 响应头里带上是否命中了天气缓存，方便前端 / 排查
CACHE_HEADER = "X-Cache"


async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = rid  # 异常处理器里会带上

    response: Response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = rid
    cached = getattr(request.state, "cache_hit", None)
    if cached is not None:
        response.headers[CACHE_HEADER] = "HIT" if cached else "MISS"
    return response
