from django.urls import path

from control import views_categories
from . import views, views_public

app_name = 'catalog'

urlpatterns = [
    # ── 서비스 트리 / CRUD
    path('services/', views.services_collection, name='services'),
    path('services/bulk/', views.services_bulk, name='services_bulk'),
    path('services/validate/', views.services_validate, name='services_validate'),
    path('services/stats/', views.services_stats, name='services_stats'),
    path('services/<uuid:service_id>/', views.service_detail, name='service_detail'),
    path('services/<uuid:service_id>/move/', views.service_move, name='service_move'),

    # ── 카테고리 (최상위 서비스)
    path('services/categories/', views_categories.categories, name='categories'),
    path('services/categories/<uuid:category_id>/', views_categories.category_detail, name='category_detail'),

    # ── 페이지 빌더
    path('component-types/', views.component_types, name='component_types'),
    path('services/<uuid:service_id>/components/', views.service_components, name='service_components'),
    path('services/<uuid:service_id>/components/<uuid:component_id>/',
         views.component_detail, name='component_detail'),
    path('services/<uuid:service_id>/components/<uuid:component_id>/move/',
         views.component_move, name='component_move'),
    path('services/<uuid:service_id>/components/<uuid:component_id>/images/',
         views.component_images, name='component_images'),
    path('services/<uuid:service_id>/components/<uuid:component_id>/images/<uuid:image_id>/',
         views.component_image_detail, name='component_image_detail'),
    path('services/<uuid:service_id>/components/<uuid:component_id>/images/<uuid:image_id>/move/',
         views.component_image_move, name='component_image_move'),
]

# 공개 API (/api/...), 인증 없음
public_urlpatterns = [
    path('services/<str:slug>/', views_public.service_page, name='service_page'),
]
