"""
URL configuration for sitecms_project project.

  /api/admin/...  관리자 JSON API (require_admin)
  /api/auth/...   로그인/로그아웃
  /api/services/<slug>/  공개 서비스 페이지
"""
from django.urls import path, include

from control.catalog.urls import public_urlpatterns

urlpatterns = [
    # ✅ 관리자 API
    path('api/admin/', include(('control.catalog.urls', 'catalog'), namespace='catalog')),

    # 로그인/로그아웃
    path('api/', include(('control.urls', 'control'), namespace='control')),

    # 공개
    path('api/', include((public_urlpatterns, 'public'), namespace='public')),
]
