"""
Tests for selection capture from bound forms.
"""
from django import forms
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase

from content.models import Article, Collection
from refactions.exceptions import EmptySelection
from refactions.services.selection import Selection, capture_selection

from .helpers import make_articles


class CollectionForm(forms.ModelForm):
    class Meta:
        model = Collection
        fields = ["name", "articles", "featured"]


class TestCaptureSelection(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.a1, cls.a2, cls.a3 = make_articles("One", "Two", "Three")

    def test_submitted_value_is_used_not_saved_value(self):
        collection = Collection.objects.create(name="Saved")
        collection.articles.set([self.a1])
        form = CollectionForm({"name": "Saved", "articles": [str(self.a2.pk), str(self.a3.pk)]}, instance=collection)

        selection = capture_selection(form, "articles")

        self.assertEqual(selection.ids, (self.a2.pk, self.a3.pk))
        self.assertEqual(selection.model, Article)
        self.assertEqual(selection.entity_type, "content.article")

    def test_order_is_kept_and_duplicates_dropped(self):
        form = CollectionForm({"articles": [str(self.a3.pk), "", str(self.a1.pk), str(self.a3.pk)]})
        self.assertEqual(list(capture_selection(form, "articles")), [self.a3.pk, self.a1.pk])

    def test_non_canonical_ids_are_matched_and_deduplicated(self):
        form = CollectionForm({"articles": [f"0{self.a2.pk}", f" {self.a1.pk} ", str(self.a2.pk)]})
        self.assertEqual(list(capture_selection(form, "articles")), [self.a2.pk, self.a1.pk])

    def test_unknown_and_invalid_ids_are_ignored(self):
        form = CollectionForm({"articles": ["999999", "abc", str(self.a2.pk)]})
        selection = capture_selection(form, "articles")
        self.assertEqual(len(selection), 1)
        self.assertEqual(selection.ids, (self.a2.pk,))

    def test_single_valued_field(self):
        form = CollectionForm({"featured": str(self.a1.pk)})
        self.assertEqual(capture_selection(form, "featured").ids, (self.a1.pk,))

    def test_prefixed_form(self):
        form = CollectionForm({"shelf-articles": [str(self.a1.pk)]}, prefix="shelf")
        self.assertEqual(capture_selection(form, "articles").ids, (self.a1.pk,))

    def test_empty_selection(self):
        with self.assertRaises(EmptySelection) as ctx:
            capture_selection(CollectionForm({"articles": ["", ""]}), "articles")
        self.assertEqual(ctx.exception.field_name, "articles")

    def test_nothing_left_after_filtering(self):
        with self.assertRaises(EmptySelection):
            capture_selection(CollectionForm({"articles": ["424242"]}), "articles")

    def test_non_reference_field(self):
        with self.assertRaises(ImproperlyConfigured):
            capture_selection(CollectionForm({"name": "x"}), "name")
        with self.assertRaises(ImproperlyConfigured):
            capture_selection(CollectionForm({}), "missing")

    def test_selection_truthiness(self):
        self.assertFalse(Selection(field_name="articles", model=Article, ids=()))
        self.assertTrue(Selection(field_name="articles", model=Article, ids=(self.a1.pk,)))
