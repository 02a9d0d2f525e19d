# control/views_auth_api.py
"""
관리자 콘솔 로그인/로그아웃 JSON API
- 세션 로그인 (django.contrib.auth)
- 이관된 사용자의 구형 bcrypt 해시($2a$/$2b$/$2y$)는 bcrypt 로 검증 후 Django 해시로 바꿔 저장
"""
import bcrypt
from django.contrib.auth import get_user_model, login, logout
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from control.errors import Unauthenticated, ValidationFailed, _ok, api_view, json_body

import logging
logger = logging.getLogger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
BAD_CREDENTIALS = "이메일 또는 비밀번호가 올바르지 않습니다."


def _find_user(email):
    User = get_user_model()
    return (User.objects.filter(email__iexact=email).order_by("pk").first()
            or User.objects.filter(username__iexact=email).first())


def _check_password(user, raw: str) -> bool:
    """Django 해시 우선, 구형 bcrypt 해시면 검증 성공 시 바로 재해시"""
    stored = user.password or ""
    if stored.startswith(BCRYPT_PREFIXES):
        try:
            matched = bcrypt.checkpw(raw.encode(), stored.encode())
        except ValueError:
            logger.warning("AUTH: malformed bcrypt hash user=%s", user.pk)
            return False
        if matched:
            user.set_password(raw)
            user.save(update_fields=["password"])
            logger.info("AUTH: migrated legacy bcrypt hash user=%s", user.pk)
        return matched
    return user.check_password(raw)


def _user_payload(user):
    return {"id": user.pk, "email": user.email, "username": user.get_username(), "is_staff": user.is_staff}


@csrf_exempt
@require_POST
@api_view
def api_login(request):
    body = json_body(request) if request.content_type == "application/json" else request.POST
    email = (body.get("email") or body.get("username") or "").strip().lower()
    password = body.get("password") or ""
    if not email or not password:
        raise ValidationFailed("이메일/비밀번호를 입력하세요.")

    user = _find_user(email)
    if user is None or not user.is_active or not _check_password(user, password):
        logger.info("AUTH: login failed email=%s", email)
        raise Unauthenticated(BAD_CREDENTIALS)

    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    logger.info("AUTH: login user=%s staff=%s", user.pk, user.is_staff)
    return _ok(user=_user_payload(user))


@require_POST
@api_view
def api_logout(request):
    if request.user.is_authenticated:
        logger.info("AUTH: logout user=%s", request.user.pk)
    logout(request)
    return _ok()


@require_GET
@api_view
def api_me(request):
    if not request.user.is_authenticated:
        raise Unauthenticated("로그인이 필요합니다.")
    return _ok(user=_user_payload(request.user))
