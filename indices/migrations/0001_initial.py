from __future__ import annotations

import uuid

import django.db.models.deletion
from django.db import migrations, models

INDEX_TYPE_CHOICES = [
    ("NDVI", "Normalized difference vegetation index"),
    ("EVI", "Enhanced vegetation index"),
    ("SAVI", "Soil-adjusted vegetation index"),
    ("NDWI", "Normalized difference water index"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("lands", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Analysis",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "index_type",
                    models.CharField(
                        choices=INDEX_TYPE_CHOICES, max_length=8
                    ),
                ),
                ("date_from", models.DateField()),
                ("date_to", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("result", models.JSONField(blank=True, null=True)),
                ("error", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                (
                    "land",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="analyses",
                        to="lands.land",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["land", "created_at"],
                        name="indices_analysis_land_idx",
                    ),
                    models.Index(
                        fields=["status"],
                        name="indices_analysis_status_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DailyIndexStat",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "index_type",
                    models.CharField(
                        choices=INDEX_TYPE_CHOICES, max_length=8
                    ),
                ),
                ("date", models.DateField()),
                ("data", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "land",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_stats",
                        to="lands.land",
                    ),
                ),
            ],
            options={
                "ordering": ["date"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["land", "index_type", "date"],
                        name="uniq_daily_index_stat_land_index_date",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DailyIndexRaster",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "index_type",
                    models.CharField(
                        choices=INDEX_TYPE_CHOICES, max_length=8
                    ),
                ),
                ("date", models.DateField()),
                (
                    "png_path",
                    models.CharField(blank=True, max_length=512, null=True),
                ),
                (
                    "tiff_path",
                    models.CharField(blank=True, max_length=512, null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "land",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_rasters",
                        to="lands.land",
                    ),
                ),
            ],
            options={
                "ordering": ["date"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["land", "index_type", "date"],
                        name="uniq_daily_index_raster_land_index_date",
                    )
                ],
            },
        ),
    ]
