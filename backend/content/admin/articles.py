# backend/content/admin/articles.py

from __future__ import annotations
from django.contrib import admin
from ..models import Article

@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    list_display = ("title", "status", "is_featured", "collection_count", "updated_at")
    list_filter = ("status", "is_featured")
    search_fields = ("title",)
    ordering = ("title",)
    readonly_fields = ("created_at", "updated_at")

    @admin.display(description="Collections")
    def collection_count(self, obj):
        return obj.collections.count()
