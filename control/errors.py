# control/errors.py
from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Optional

from django.db import IntegrityError
from django.http import Http404, JsonResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """서비스 계층에서 올리는 예외. 뷰 래퍼(api_view)가 JSON 응답으로 바꾼다."""
    status = 500

    def __init__(self, message: str, details: Optional[Any] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status is not None:
            self.status = status


class ValidationFailed(ApiError):
    status = 400


class CircularReference(ValidationFailed):
    def __init__(self, message: str = "순환 참조가 감지되었습니다.", details=None):
        super().__init__(message, details)


class Unauthenticated(ApiError):
    status = 401


class Forbidden(ApiError):
    status = 403


class NotFound(ApiError):
    status = 404


class Conflict(ApiError):
    status = 409


def _ok(results=None, status=200, **extra):
    payload = {'ok': True}
    if results is not None:
        payload['results'] = results
    payload.update(extra)
    return JsonResponse(payload, status=status, json_dumps_params={'ensure_ascii': False})


def _err(msg, status=400, details=None):
    payload = {'ok': False, 'error': msg}
    if details is not None:
        payload['details'] = details
    return JsonResponse(payload, status=status, json_dumps_params={'ensure_ascii': False})


def api_view(view):
    """
    JSON API 뷰 공통 래퍼
      - ApiError      → 해당 status + {"ok": false, "error": ...}
      - Http404       → 404
      - IntegrityError→ 409 (slug / (parent, position) 유니크 제약이 최종 방어선)
      - 그 외          → 500, 내부 정보는 노출하지 않음
    """
    @wraps(view)
    def _wrap(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ApiError as ex:
            logger.info("API: %s %s -> %s %s", request.method, request.path, ex.status, ex.message)
            return _err(ex.message, ex.status, ex.details)
        except Http404:
            return _err("대상을 찾을 수 없습니다.", 404)
        except IntegrityError as ex:
            logger.info("API: integrity violation %s %s: %s", request.method, request.path, ex)
            return _err("이미 존재하는 값과 충돌합니다.", 409)
        except Exception:
            logger.exception("API: unhandled error %s %s", request.method, request.path)
            return _err("Internal server error", 500)
    return _wrap


def json_body(request) -> dict:
    """요청 본문(JSON 객체)을 읽는다. 형식 오류는 400."""
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationFailed("잘못된 JSON")
    if not isinstance(payload, dict):
        raise ValidationFailed("JSON 객체가 필요합니다.")
    return payload


def form_errors(form) -> dict:
    """form.errors → {field: [message, ...]}"""
    errors_json = form.errors.get_json_data()
    return {field: [e["message"] for e in errs] for field, errs in errors_json.items()}
