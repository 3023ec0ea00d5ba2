"""
Tests for the project system checks and the signed tokens.
"""
from django.core.exceptions import SuspiciousOperation
from django.test import SimpleTestCase, TestCase, override_settings

from refactions.services.tokens import ConfirmationTicket, CorrelationToken, messages_selector
from sitecfg.checks import project_conventions_check, reference_actions_check

from .helpers import record_action


def _ids(messages):
    return [m.id for m in messages]


class TestProjectChecks(SimpleTestCase):
    def test_sqlite_is_reported(self):
        self.assertIn("CFG.E001", _ids(project_conventions_check(None)))

    def test_required_apps_are_installed(self):
        self.assertNotIn("CFG.E002", _ids(project_conventions_check(None)))

    @override_settings(USE_TZ=False)
    def test_use_tz_is_required(self):
        self.assertIn("CFG.E005", _ids(project_conventions_check(None)))


class TestReferenceActionsChecks(TestCase):
    def test_valid_configuration(self):
        self.assertEqual(reference_actions_check(None), [])

    @override_settings(REFERENCE_ACTIONS={"INLINE_THRESHOLD": -1, "POLL_CHUNK": 0})
    def test_bad_numbers(self):
        self.assertEqual(_ids(reference_actions_check(None)), ["REFACT.E002", "REFACT.E003"])

    @override_settings(REFERENCE_ACTIONS={"PROCESS_ON_POLL": False})
    def test_no_processing_on_poll_warns(self):
        self.assertEqual(_ids(reference_actions_check(None)), ["REFACT.W004"])

    @override_settings(REFERENCE_ACTIONS="nope")
    def test_not_a_dict(self):
        self.assertEqual(_ids(reference_actions_check(None)), ["REFACT.E001"])


def test_unresolvable_confirm_route(temporary_action):
    temporary_action(record_action(confirm_route="content:missing"))
    assert "REFACT.E005" in _ids(reference_actions_check(None))


class TestTokens(SimpleTestCase):
    def test_correlation_token(self):
        token = CorrelationToken.new("articles", "content.article")
        other = CorrelationToken.new("articles", "content.article")
        self.assertNotEqual(token.key, other.key)
        self.assertEqual(CorrelationToken.loads(token.dumps()), token)
        self.assertEqual(token.selector, f'[data-reference-actions-messages="{token.key}"]')
        self.assertEqual(messages_selector(), "[data-reference-actions-messages]")

    def test_tokens_are_not_interchangeable(self):
        ticket = ConfirmationTicket(action_id="a", entity_type="content.article", ids=("1",))
        with self.assertRaises(SuspiciousOperation):
            CorrelationToken.loads(ticket.dumps())

    def test_expired_token(self):
        token = CorrelationToken.new("articles", "content.article").dumps()
        with self.assertRaises(SuspiciousOperation):
            CorrelationToken.loads(token, max_age=-1)

    def test_bad_signature(self):
        with self.assertRaises(SuspiciousOperation):
            ConfirmationTicket.loads("garbage")
