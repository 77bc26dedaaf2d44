# app/middlewares/logging.py
"""访问日志中间件 - 记录每个请求的参数、状态码和耗时

注意：使用纯 ASGI 中间件而非 BaseHTTPMiddleware，避免 Python 3.11+ 中的
ExceptionGroup 兼容性问题。
"""
from __future__ import annotations

import json
import logging
import time
from urllib.parse import parse_qsl

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("api.access")
logger.setLevel(logging.DEBUG)

# 如果没有 handler，添加一个控制台输出
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s"
    ))
    logger.addHandler(handler)

# 响应体日志的最大长度
MAX_BODY_LOG = 1000


class LoggingMiddleware:
    """
    记录请求参数和响应内容

    天气 / 定位接口的响应体只在 DEBUG 级别输出，且会截断
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # 只处理 HTTP 请求
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "")
        path = scope.get("path", "")
        query_params = dict(parse_qsl(scope.get("query_string", b"").decode("utf-8")))

        req_log = f">>> {method} {path}"
        if query_params:
            req_log += f" | Query: {json.dumps(query_params, ensure_ascii=False)}"
        logger.info(req_log)

        response_status = 0
        response_body_parts: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message.get("status", 0)
            elif message["type"] == "http.response.body":
                body = message.get("body", b"")
                if body:
                    response_body_parts.append(body)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.perf_counter() - start_time
            level = logging.WARNING if response_status >= 500 else logging.INFO
            logger.log(
                level,
                "<<< %s %s | Status: %s | Time: %.3fs",
                method,
                path,
                response_status,
                duration,
            )

            if response_body_parts and logger.isEnabledFor(logging.DEBUG):
                body = b"".join(response_body_parts).decode("utf-8", errors="replace")
                if len(body) > MAX_BODY_LOG:
                    body = body[:MAX_BODY_LOG] + "...[截断]"
                logger.debug("    Body: %s", body)
