# backend/content/admin/collections.py

from __future__ import annotations
from django import forms
from django.contrib import admin
from django.core.exceptions import ValidationError

from refactions.admin import ReferenceActionsFieldsMixin, ReferenceActionsMixin
from ..models import Collection, Shelf

class CollectionAdminForm(forms.ModelForm):
    class Meta:
        model = Collection
        fields = "__all__"

    def clean(self):
        cleaned = super().clean()
        featured = cleaned.get("featured")
        articles = cleaned.get("articles")
        # L'article mis en avant doit faire partie de la collection
        if featured is not None and articles is not None and featured not in articles:
            raise ValidationError({"featured": "The featured article must belong to the collection."})
        return cleaned

class ShelfInline(ReferenceActionsFieldsMixin, admin.TabularInline):
    model = Shelf
    extra = 0
    fields = ("position", "label", "articles")
    ordering = ("position",)
    reference_actions = {
        "articles": {
            "enabled": True,
            "action_title": "Shelf actions",
            "include_exclude": "include",
            "selected_actions": ["article_publish", "article_unpublish"],
        },
    }

@admin.register(Collection)
class CollectionAdmin(ReferenceActionsMixin, admin.ModelAdmin):
    form = CollectionAdminForm

    list_display = ("id", "name", "article_count", "featured", "updated_at")
    search_fields = ("name",)
    filter_horizontal = ("articles",)
    inlines = [ShelfInline]
    ordering = ("name",)
    readonly_fields = ("created_at", "updated_at")
    reference_actions = {
        "articles": {
            "enabled": True,
            "action_title": "Bulk actions",
            "include_exclude": "exclude",
            "selected_actions": [],
        },
        "featured": {
            "enabled": True,
            "display": "select",
        },
    }

    @admin.display(description="Articles")
    def article_count(self, obj):
        return obj.articles.count()
