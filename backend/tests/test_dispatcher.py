"""
Tests for action resolution and the dispatch state machine.
"""
from urllib.parse import parse_qs, urlsplit

import pytest
from django.test import TestCase

from content.models import Article
from ops.models import JobItem, JobRun
from ops.services.queue import process
from refactions.constants import RESULT_APPLIED, RESULT_MISSING, DispatchState
from refactions.exceptions import EmptySelection, NoEligibleEntities, UnknownAction
from refactions.registry import Action, registry
from refactions.services.dispatcher import Dispatcher, apply_to_entity, summary_message
from refactions.services.resolver import ActionResolver
from refactions.services.selection import Selection
from refactions.services.tokens import ConfirmationTicket

from . import helpers
from .helpers import make_articles, make_user, record_action


def _selection(*articles):
    return Selection(field_name="articles", model=Article, ids=tuple(a.pk for a in articles))


class TestActionResolver(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.a1, cls.a2 = make_articles("One", "Two")
        cls.admin = make_user("admin", superuser=True)

    def test_resolve(self):
        resolution = ActionResolver().resolve("article_unpublish", _selection(self.a2, self.a1), self.admin)
        self.assertEqual(resolution.entities, [self.a2, self.a1])
        self.assertEqual(resolution.warnings, [])
        self.assertIsNone(resolution.confirm_route)

    def test_unknown_action(self):
        with self.assertRaises(UnknownAction):
            ActionResolver().resolve("nope", _selection(self.a1), self.admin)

    def test_action_for_another_entity_type(self):
        with self.assertRaises(UnknownAction):
            ActionResolver().load_action("article_publish", "content.collection")

    def test_action_filtered_out_by_field_settings(self):
        with self.assertRaises(UnknownAction):
            ActionResolver().resolve("article_delete", _selection(self.a1), self.admin, allowed_actions={"article_publish"})

    def test_all_denied_yields_one_warning_per_entity(self):
        viewer = make_user("viewer", perms=["view_article"])
        with self.assertRaises(NoEligibleEntities) as ctx:
            ActionResolver().resolve("article_unpublish", _selection(self.a1, self.a2), viewer)
        self.assertEqual(ctx.exception.warnings, [
            "No access to execute Unpublish article on the article One.",
            "No access to execute Unpublish article on the article Two.",
        ])

    def test_missing_entities_yield_generic_warning(self):
        selection = Selection(field_name="articles", model=Article, ids=(424242,))
        with self.assertRaises(NoEligibleEntities) as ctx:
            ActionResolver().resolve("article_unpublish", selection, self.admin)
        self.assertEqual(ctx.exception.warnings, ["No articles selected."])

    def test_confirm_route_is_exposed(self):
        resolution = ActionResolver().resolve("article_delete", _selection(self.a1), self.admin)
        self.assertEqual(resolution.confirm_route, "refactions:confirm")


class TestApplyToEntity(TestCase):
    """The per-entity callback is idempotent and tolerates missing entities."""

    def test_apply_is_idempotent(self):
        article, = make_articles("One", status=Article.Status.DRAFT)
        self.assertEqual(apply_to_entity(article.pk, "content.article", "article_publish"), RESULT_APPLIED)
        article.refresh_from_db()
        first_update = article.updated_at

        self.assertEqual(apply_to_entity(article.pk, "content.article", "article_publish"), RESULT_APPLIED)
        article.refresh_from_db()
        self.assertEqual(article.status, Article.Status.PUBLISHED)
        self.assertEqual(article.updated_at, first_update)

    def test_missing_entity(self):
        self.assertEqual(apply_to_entity("424242", "content.article", "article_publish"), RESULT_MISSING)

    def test_summary_message(self):
        self.assertEqual(summary_message("Publish all articles", 1), "Publish all articles was successfully applied to 1 item.")
        self.assertEqual(summary_message("Publish all articles", 3), "Publish all articles was successfully applied to 3 items.")


@pytest.mark.django_db
def test_unpublish_two_entities_goes_through_a_job():
    a1, a2 = make_articles("One", "Two")
    dispatcher = Dispatcher()

    outcome = dispatcher.dispatch("article_unpublish", _selection(a1, a2), make_user("admin", superuser=True),
                                  destination="/back/", correlation="abc")

    assert outcome.state == DispatchState.EXECUTING
    assert dispatcher.transitions == [DispatchState.IDLE, DispatchState.RESOLVING, DispatchState.EXECUTING]
    run = outcome.job
    assert run.total == 2
    assert list(run.items.values_list("entity_id", flat=True)) == [str(a1.pk), str(a2.pk)]
    assert run.params["destination"] == "/back/"

    assert process(run) == 2
    run.refresh_from_db()
    assert run.status == JobRun.Status.SUCCESS
    assert run.metrics["summary"] == "Unpublish all articles was successfully applied to 2 items."
    assert run.metrics["applied"] == 2
    assert run.metrics["messages_key"] == "abc"
    # Nettoyage inconditionnel : items et clé de corrélation
    assert not JobItem.objects.filter(run=run).exists()
    assert "correlation" not in run.params
    assert set(Article.objects.values_list("status", flat=True)) == {Article.Status.UNPUBLISHED}


@pytest.mark.django_db
def test_inline_execution_below_threshold():
    a1, = make_articles("One")
    dispatcher = Dispatcher()

    outcome = dispatcher.dispatch("article_unpublish", _selection(a1), make_user("admin", superuser=True))

    assert outcome.state == DispatchState.DONE
    assert dispatcher.transitions[-2:] == [DispatchState.EXECUTING, DispatchState.DONE]
    assert outcome.applied == 1
    assert outcome.summary == "Unpublish all articles was successfully applied to 1 item."
    assert not JobRun.objects.exists()


@pytest.mark.django_db
def test_callback_once_per_eligible_entity_in_selection_order(temporary_action):
    helpers.CALLS.clear()
    a1, a2, a3 = make_articles("One", "Two", "Three")
    temporary_action(record_action(access=lambda entity, user: entity.pk != a2.pk))

    outcome = Dispatcher(inline_threshold=10).dispatch(
        "article_record", _selection(a3, a2, a1), make_user("admin", superuser=True)
    )

    assert helpers.CALLS == [a3.pk, a1.pk]
    assert outcome.applied == len(outcome.entities) == 2
    assert outcome.warnings == ["No access to execute Record article on the article Two."]


@pytest.mark.django_db
def test_no_access_to_first_entity_through_a_job(temporary_action):
    helpers.CALLS.clear()
    a1, a2, a3 = make_articles("One", "Two", "Three")
    temporary_action(record_action(access=lambda entity, user: entity.pk != a1.pk))

    outcome = Dispatcher().dispatch("article_record", _selection(a1, a2, a3), make_user("admin", superuser=True))

    assert outcome.warnings == ["No access to execute Record article on the article One."]
    assert outcome.job.total == 2
    process(outcome.job)
    assert helpers.CALLS == [a2.pk, a3.pk]
    outcome.job.refresh_from_db()
    assert outcome.job.metrics["summary"] == "Record all articles was successfully applied to 2 items."


@pytest.mark.django_db
def test_all_denied_submits_no_job():
    a1, a2 = make_articles("One", "Two")
    dispatcher = Dispatcher()

    with pytest.raises(NoEligibleEntities) as exc:
        dispatcher.dispatch("article_unpublish", _selection(a1, a2), make_user("viewer", perms=["view_article"]))

    assert len(exc.value.warnings) == 2
    assert not JobRun.objects.exists()
    assert DispatchState.EXECUTING not in dispatcher.transitions
    assert set(Article.objects.values_list("status", flat=True)) == {Article.Status.PUBLISHED}


@pytest.mark.django_db
def test_confirming_action_never_executes():
    a1, a2 = make_articles("One", "Two")
    dispatcher = Dispatcher()

    outcome = dispatcher.dispatch("article_delete", _selection(a2, a1), make_user("admin", superuser=True),
                                  destination="/back/", correlation="abc")

    assert outcome.state == DispatchState.CONFIRMING
    assert dispatcher.transitions[-1] == DispatchState.CONFIRMING
    assert outcome.confirm_url.startswith("/admin/reference-actions/confirm/?token=")
    assert Article.objects.count() == 2
    assert not JobRun.objects.exists()

    ticket = ConfirmationTicket.loads(parse_qs(urlsplit(outcome.confirm_url).query)["token"][0])
    assert ticket.action_id == "article_delete"
    assert ticket.ids == (str(a2.pk), str(a1.pk))
    assert ticket.destination == "/back/"
    assert ticket.correlation == "abc"


@pytest.mark.django_db
def test_empty_selection_does_nothing():
    dispatcher = Dispatcher()

    with pytest.raises(EmptySelection):
        dispatcher.dispatch("article_unpublish", Selection(field_name="articles", model=Article, ids=()), None)

    assert dispatcher.state == DispatchState.IDLE
    assert not JobRun.objects.exists()


@pytest.mark.django_db
def test_inline_failure_still_reaches_done(temporary_action):
    a1, = make_articles("One")

    def explode(entity):
        raise RuntimeError("boom")

    temporary_action(Action(id="article_explode", label="Explode", entity_type="content.article", execute=explode))
    dispatcher = Dispatcher()

    with pytest.raises(RuntimeError):
        dispatcher.dispatch("article_explode", _selection(a1), make_user("admin", superuser=True))
    assert dispatcher.state == DispatchState.DONE
    assert "article_explode" in registry
