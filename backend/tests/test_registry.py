"""
Tests for the action registry, field settings and the settings form.
"""
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase

from content.models import Article
from refactions.builtin import delete_action, field_update_action
from refactions.constants import Display, IncludeExclude
from refactions.exceptions import UnknownAction
from refactions.forms import FieldActionSettingsForm
from refactions.registry import ActionRegistry, action, registry
from refactions.models import FieldActionConfig
from refactions.services.field_settings import FieldActionSettings, effective_settings, stored_settings

from .helpers import make_articles, make_user


class TestActionRegistry(TestCase):
    """Registration, lookup and per-type listing."""

    def setUp(self):
        self.site = ActionRegistry()
        self.publish = self.site.register(field_update_action(
            "publish", "Publish article", Article, field="status", value="published", action_label="Publish",
        ))

    def test_load_known_action(self):
        self.assertIs(self.site.load("publish"), self.publish)
        self.assertIn("publish", self.site)
        self.assertEqual(len(self.site), 1)

    def test_load_unknown_action(self):
        with self.assertRaises(UnknownAction):
            self.site.load("nope")

    def test_duplicate_registration_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            self.site.register(field_update_action("publish", "Again", Article, field="status", value="draft"))
        replaced = self.site.register(
            field_update_action("publish", "Again", Article, field="status", value="draft"), replace=True
        )
        self.assertIs(self.site.load("publish"), replaced)

    def test_unregister(self):
        self.site.unregister("publish")
        self.assertNotIn("publish", self.site)
        with self.assertRaises(UnknownAction):
            self.site.unregister("publish")

    def test_for_entity_type(self):
        self.assertEqual(self.site.for_entity_type("content.article"), [self.publish])
        self.assertEqual(self.site.for_entity_type("content.collection"), [])

    def test_decorator_registers_on_given_site(self):
        @action(model=Article, label="Archive article", action_label="Archive", site=self.site)
        def archive(article):
            return article

        archived = self.site.load("archive")
        self.assertEqual(archived.entity_type, "content.article")
        self.assertIs(archived.execute, archive)

    def test_bulk_label(self):
        self.assertEqual(self.publish.bulk_label(), "Publish all articles")
        self.assertEqual(delete_action(Article).bulk_label(), "Delete all articles")

    def test_content_actions_are_autodiscovered(self):
        for action_id in ("article_publish", "article_unpublish", "article_delete", "article_feature"):
            self.assertIn(action_id, registry)
        self.assertEqual(registry.load("article_delete").confirm_route, "refactions:confirm")


class TestActionAccess(TestCase):
    """Default permission-based access and custom access checks."""

    @classmethod
    def setUpTestData(cls):
        cls.article, = make_articles("First")

    def test_default_access_uses_model_permission(self):
        publish = registry.load("article_publish")
        self.assertTrue(publish.access(self.article, make_user("changer", perms=["change_article"])))
        self.assertFalse(publish.access(self.article, make_user("viewer", perms=["view_article"])))

    def test_delete_requires_delete_permission(self):
        delete = registry.load("article_delete")
        self.assertFalse(delete.access(self.article, make_user("changer", perms=["change_article"])))
        self.assertTrue(delete.access(self.article, make_user("deleter", perms=["delete_article"])))

    def test_custom_access_check(self):
        feature = registry.load("article_feature")
        user = make_user("changer", perms=["change_article"])
        self.assertTrue(feature.access(self.article, user))
        draft = Article.objects.create(title="Draft")
        self.assertFalse(feature.access(draft, user))


class TestFieldActionSettings(TestCase):
    """Defaults, include/exclude filtering and the settings form."""

    def test_defaults(self):
        s = FieldActionSettings.from_dict({})
        self.assertFalse(s.enabled)
        self.assertEqual(s.action_title, "Action")
        self.assertEqual(s.include_exclude, IncludeExclude.EXCLUDE)
        self.assertEqual(s.selected_actions, frozenset())
        self.assertEqual(s.display, Display.BUTTONS)

    def test_nested_options_are_merged(self):
        s = FieldActionSettings.from_dict({
            "enabled": True,
            "options": {"action_title": "Bulk", "include_exclude": "include", "selected_actions": {"article_publish": "article_publish", "article_delete": 0}},
        })
        self.assertEqual(s.action_title, "Bulk")
        self.assertEqual(s.selected_actions, frozenset({"article_publish"}))

    def test_invalid_include_exclude(self):
        with self.assertRaises(ImproperlyConfigured):
            FieldActionSettings.from_dict({"include_exclude": "maybe"})

    def test_exclude_filter(self):
        s = FieldActionSettings.from_dict({"enabled": True, "selected_actions": ["article_delete"]})
        ids = [a.id for a in s.available_actions("content.article")]
        self.assertNotIn("article_delete", ids)
        self.assertIn("article_publish", ids)

    def test_include_filter(self):
        s = FieldActionSettings.from_dict({"enabled": True, "include_exclude": "include", "selected_actions": ["article_delete"]})
        self.assertEqual(s.options("content.article"), [("article_delete", "Delete all articles")])

    def test_code_settings_when_nothing_is_stored(self):
        config = {"articles": {"enabled": False}, "featured": {"enabled": True}}
        self.assertFalse(effective_settings("content.collection", config, "articles").enabled)
        self.assertFalse(effective_settings("content.collection", config, "missing").enabled)
        self.assertTrue(effective_settings("content.collection", config, "featured").enabled)

    def test_stored_settings_win_over_code(self):
        FieldActionConfig.objects.create(
            model_label="content.collection", field_name="featured",
            values={"enabled": False},
        )
        config = {"featured": {"enabled": True}}
        self.assertFalse(effective_settings("content.collection", config, "featured").enabled)
        self.assertFalse(stored_settings("content.collection", "featured").enabled)
        self.assertIsNone(stored_settings("content.collection", "articles"))

    def test_settings_form_lists_every_action(self):
        current = FieldActionSettings.from_dict({"enabled": True, "include_exclude": "include", "selected_actions": ["article_publish"]})
        form = FieldActionSettingsForm(entity_type="content.article", settings=current)
        choices = dict(form.fields["selected_actions"].choices)
        self.assertIn("article_delete", choices)
        self.assertEqual(choices["article_publish"], "Publish all articles")
        self.assertEqual(form.initial["include_exclude"], "include")

    def test_settings_form_round_trip(self):
        form = FieldActionSettingsForm(
            {"enabled": "on", "action_title": "Bulk", "include_exclude": "include",
             "selected_actions": ["article_unpublish"], "display": "select"},
            entity_type="content.article",
        )
        self.assertTrue(form.is_valid(), form.errors)
        s = form.to_settings()
        self.assertTrue(s.enabled)
        self.assertEqual(s.display, Display.SELECT)
        self.assertTrue(s.allows("article_unpublish"))
        self.assertFalse(s.allows("article_publish"))

    def test_settings_form_rejects_unknown_action(self):
        form = FieldActionSettingsForm(
            {"include_exclude": "exclude", "selected_actions": ["nope"], "display": "buttons"},
            entity_type="content.article",
        )
        self.assertFalse(form.is_valid())
        self.assertIn("selected_actions", form.errors)
