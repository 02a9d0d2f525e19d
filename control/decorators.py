# control/decorators.py
from functools import wraps

from control.errors import _err

import logging
logger = logging.getLogger(__name__)


def _is_admin(user) -> bool:
    return bool(user and user.is_authenticated and user.is_active and user.is_staff)


def require_admin(view):
    """
    관리자 API 게이트
    - 세션 없음 → 401
    - 로그인했지만 관리자(is_staff) 아님 → 403
    """
    @wraps(view)
    def _wrap(request, *args, **kwargs):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return _err("로그인이 필요합니다.", 401)
        if not _is_admin(user):
            logger.info("FORBIDDEN: user=%s path=%s", getattr(user, "email", None), request.path)
            return _err("관리자만 접근 가능합니다.", 403)
        return view(request, *args, **kwargs)
    return _wrap
