# control/middleware.py
from __future__ import annotations

import time

from django.http import HttpRequest, HttpResponse

import logging
logger = logging.getLogger(__name__)

API_PATH_PREFIX = "/api/"


class ApiRequestLogMiddleware:
    """/api/ 요청마다 method, path, status, 처리시간(ms)을 한 줄로 남긴다."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if not (request.path or "").startswith(API_PATH_PREFIX):
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        user = getattr(request, "user", None)
        logger.info("MW: %s %s -> %s (%.1fms) user=%s",
                    request.method, request.path, response.status_code, elapsed_ms,
                    getattr(user, "pk", None) if user and user.is_authenticated else None)
        return response
