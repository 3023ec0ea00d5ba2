from __future__ import annotations

from django.db import models
from django.db.models import UniqueConstraint
from django.db.models.functions import Lower


class Article(models.Model):
    """
    Contenu éditorial, cible des actions en masse (publier, dépublier, supprimer...).
    """
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        UNPUBLISHED = "unpublished", "Unpublished"

    title = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.DRAFT, db_index=True)
    is_featured = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "articles"
        ordering = ("title",)
        indexes = [
            models.Index(fields=["status"], name="ix_article_status"),
        ]

    def __str__(self) -> str:
        return self.title


class Collection(models.Model):
    """
    Regroupement d'articles : porte les champs de référence sur lesquels
    les actions sont proposées (M2M `articles`, FK `featured`).
    """
    name = models.CharField(max_length=150)
    articles = models.ManyToManyField(Article, blank=True, related_name="collections")
    featured = models.ForeignKey(
        Article, null=True, blank=True, on_delete=models.SET_NULL, related_name="featured_in"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "collections"
        constraints = [
            UniqueConstraint(Lower("name"), name="uq_collection_name_ci"),
        ]

    def __str__(self) -> str:
        return self.name


class Shelf(models.Model):
    """
    Sous-formulaire (inline) d'une collection, avec sa propre référence d'articles.
    """
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name="shelves")
    position = models.PositiveIntegerField(default=0)
    label = models.CharField(max_length=100)
    articles = models.ManyToManyField(Article, blank=True, related_name="shelves")

    class Meta:
        db_table = "collection_shelves"
        ordering = ("collection_id", "position")

    def __str__(self) -> str:
        return f"{self.label} ({self.collection_id})"
