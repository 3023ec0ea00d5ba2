"""
Shared helpers for the reference actions tests.
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission

from content.models import Article
from refactions.registry import Action, entity_type_of

# Appels du callback d'action enregistrés par record_action()
CALLS = []


def make_user(username="editor", *, perms=(), superuser=False):
    User = get_user_model()
    if superuser:
        return User.objects.create_superuser(username, f"{username}@example.com", "pass")
    user = User.objects.create_user(username, f"{username}@example.com", "pass", is_staff=True)
    for codename in perms:
        user.user_permissions.add(Permission.objects.get(content_type__app_label="content", codename=codename))
    # Recharger pour vider le cache de permissions
    return User.objects.get(pk=user.pk)


def make_articles(*titles, status=Article.Status.PUBLISHED):
    return [Article.objects.create(title=t, status=status) for t in titles]


def record_action(id="article_record", *, access=None, confirm_route=None):
    """Action de test qui note l'ordre des entités traitées."""

    def execute(entity):
        CALLS.append(entity.pk)

    return Action(
        id=id,
        label="Record article",
        entity_type=entity_type_of(Article),
        execute=execute,
        access_check=access,
        confirm_route=confirm_route,
        action_label="Record",
    )
