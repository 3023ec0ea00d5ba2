# backend/content/actions.py

from __future__ import annotations
from refactions.builtin import delete_action, field_update_action
from refactions.registry import action, registry
from .models import Article

registry.register(field_update_action(
    "article_publish", "Publish article", Article,
    field="status", value=Article.Status.PUBLISHED, action_label="Publish",
))
registry.register(field_update_action(
    "article_unpublish", "Unpublish article", Article,
    field="status", value=Article.Status.UNPUBLISHED, action_label="Unpublish",
))
registry.register(delete_action(Article, id="article_delete", label="Delete article"))


def _can_feature(article, user) -> bool:
    # Seuls les articles publiés peuvent être mis en avant
    return article.status == Article.Status.PUBLISHED and user.has_perm("content.change_article")


@action(model=Article, id="article_feature", label="Feature article", action_label="Feature", access=_can_feature)
def feature_article(article):
    if not article.is_featured:
        article.is_featured = True
        article.save(update_fields=["is_featured", "updated_at"])
