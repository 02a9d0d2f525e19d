# control/urls.py
from django.urls import path

from .views_auth_api import api_login, api_logout, api_me

app_name = "control"

urlpatterns = [
    # 로그인/로그아웃 (세션)
    path("auth/login/", api_login, name="api_login"),
    path("auth/logout/", api_logout, name="api_logout"),
    path("auth/me/", api_me, name="api_me"),
]
