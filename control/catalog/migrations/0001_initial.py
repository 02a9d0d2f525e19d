import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ServiceNode",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.TextField()),
                ("slug", models.TextField(unique=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("image", models.TextField(blank=True, null=True)),
                ("position", models.IntegerField()),
                ("depth", models.SmallIntegerField(db_index=True, default=0)),
                ("path", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        db_column="parent_id",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="catalog.servicenode",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_service",
                "ordering": ["depth", "position", "name"],
            },
        ),
        migrations.CreateModel(
            name="PageComponent",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order", models.IntegerField()),
                (
                    "type",
                    models.TextField(
                        choices=[
                            ("HEADING", "Heading"),
                            ("TEXT_BLOCK", "Text Block"),
                            ("IMAGE", "Image"),
                            ("IMAGE_CAROUSEL", "Image Carousel"),
                            ("VIDEO_EMBED", "Video"),
                            ("REVIEW_CARD", "Review Card"),
                            ("ARTICLE_GRID", "Article Grid"),
                            ("QUOTE_BLOCK", "Quote"),
                            ("CTA_BUTTON", "Call-to-Action"),
                            ("SPACER", "Spacer"),
                            ("DIVIDER", "Divider"),
                        ]
                    ),
                ),
                ("content", models.JSONField(blank=True, default=dict)),
                ("style_variant", models.TextField(blank=True, null=True)),
                (
                    "service",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="page_components",
                        to="catalog.servicenode",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_page_component",
                "ordering": ["order"],
            },
        ),
        migrations.CreateModel(
            name="CarouselImage",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("image_url", models.TextField()),
                ("alt_text", models.TextField(blank=True, null=True)),
                ("caption", models.TextField(blank=True, null=True)),
                ("order", models.IntegerField()),
                (
                    "component",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="carousel_images",
                        to="catalog.pagecomponent",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_carousel_image",
                "ordering": ["order"],
            },
        ),
        migrations.AddConstraint(
            model_name="servicenode",
            constraint=models.UniqueConstraint(
                fields=("parent", "position"), name="catalog_service_parent_position_uniq"
            ),
        ),
        migrations.AddConstraint(
            model_name="servicenode",
            constraint=models.UniqueConstraint(
                condition=models.Q(("parent__isnull", True)),
                fields=("position",),
                name="catalog_service_root_position_uniq",
            ),
        ),
        migrations.AddIndex(
            model_name="pagecomponent",
            index=models.Index(fields=["service", "order"], name="catalog_pc_service_order_idx"),
        ),
        migrations.AddIndex(
            model_name="carouselimage",
            index=models.Index(fields=["component", "order"], name="catalog_ci_component_order_idx"),
        ),
    ]
