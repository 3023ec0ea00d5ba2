"""
Pytest configuration for the reference actions tests.
"""
import pytest

from refactions.registry import registry


@pytest.fixture
def temporary_action():
    """Enregistre des actions dans le registre global pour la durée d'un test."""
    registered = []

    def _register(action):
        registry.register(action)
        registered.append(action.id)
        return action

    yield _register
    for action_id in registered:
        registry.unregister(action_id)
