from uuid import uuid4
from django.db import models
from django.db.models import Q


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ServiceNode(TimeStampedModel):
    """
    서비스/카테고리 트리 노드 (materialized path)
    - depth: 루트 0, 그 외 parent.depth + 1
    - path : 루트 → 직계 부모까지의 id 목록 (자기 자신 제외)
    - position: 같은 parent 아래 형제 정렬값 (빈 번호 허용)
    """
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    name = models.TextField()
    slug = models.TextField(unique=True)
    description = models.TextField(null=True, blank=True)
    image = models.TextField(null=True, blank=True)
    parent = models.ForeignKey('self', null=True, blank=True, on_delete=models.PROTECT,
                               related_name='children', db_column='parent_id')
    position = models.IntegerField()
    depth = models.SmallIntegerField(default=0, db_index=True)
    path = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = 'catalog_service'
        ordering = ['depth', 'position', 'name']
        constraints = [
            models.UniqueConstraint(fields=['parent', 'position'], name='catalog_service_parent_position_uniq'),
            # NULL parent는 위 제약에서 서로 다른 값으로 취급되므로 루트는 따로
            models.UniqueConstraint(fields=['position'], condition=Q(parent__isnull=True),
                                    name='catalog_service_root_position_uniq'),
        ]

    def __str__(self):
        return self.name


class ComponentType(models.TextChoices):
    HEADING = 'HEADING', 'Heading'
    TEXT_BLOCK = 'TEXT_BLOCK', 'Text Block'
    IMAGE = 'IMAGE', 'Image'
    IMAGE_CAROUSEL = 'IMAGE_CAROUSEL', 'Image Carousel'
    VIDEO_EMBED = 'VIDEO_EMBED', 'Video'
    REVIEW_CARD = 'REVIEW_CARD', 'Review Card'
    ARTICLE_GRID = 'ARTICLE_GRID', 'Article Grid'
    QUOTE_BLOCK = 'QUOTE_BLOCK', 'Quote'
    CTA_BUTTON = 'CTA_BUTTON', 'Call-to-Action'
    SPACER = 'SPACER', 'Spacer'
    DIVIDER = 'DIVIDER', 'Divider'


class PageComponent(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    service = models.ForeignKey(ServiceNode, on_delete=models.CASCADE, related_name='page_components')
    order = models.IntegerField()
    type = models.TextField(choices=ComponentType.choices)
    content = models.JSONField(default=dict, blank=True)
    style_variant = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'catalog_page_component'
        ordering = ['order']
        indexes = [
            models.Index(fields=['service', 'order'], name='catalog_pc_service_order_idx'),
        ]


class CarouselImage(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    component = models.ForeignKey(PageComponent, on_delete=models.CASCADE, related_name='carousel_images')
    image_url = models.TextField()
    alt_text = models.TextField(null=True, blank=True)
    caption = models.TextField(null=True, blank=True)
    order = models.IntegerField()

    class Meta:
        db_table = 'catalog_carousel_image'
        ordering = ['order']
        indexes = [
            models.Index(fields=['component', 'order'], name='catalog_ci_component_order_idx'),
        ]
