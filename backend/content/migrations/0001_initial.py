# backend/content/migrations/0001_initial.py
import django.db.models.deletion
import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Article",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("status", models.CharField(
                    choices=[("draft", "Draft"), ("published", "Published"), ("unpublished", "Unpublished")],
                    db_index=True,
                    default="draft",
                    max_length=16,
                )),
                ("is_featured", models.BooleanField(default=False)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "articles",
                "ordering": ("title",),
                "indexes": [models.Index(fields=["status"], name="ix_article_status")],
            },
        ),
        migrations.CreateModel(
            name="Collection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("articles", models.ManyToManyField(blank=True, related_name="collections", to="content.article")),
                ("featured", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="featured_in",
                    to="content.article",
                )),
            ],
            options={
                "db_table": "collections",
                "constraints": [
                    models.UniqueConstraint(django.db.models.functions.text.Lower("name"), name="uq_collection_name_ci"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Shelf",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                ("label", models.CharField(max_length=100)),
                ("articles", models.ManyToManyField(blank=True, related_name="shelves", to="content.article")),
                ("collection", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="shelves",
                    to="content.collection",
                )),
            ],
            options={
                "db_table": "collection_shelves",
                "ordering": ("collection_id", "position"),
            },
        ),
    ]
