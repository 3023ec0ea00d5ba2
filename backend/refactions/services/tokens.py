# backend/refactions/services/tokens.py
"""
Jetons signés qui accompagnent l'aller-retour formulaire -> dispatch -> confirmation.
Aucune donnée n'est gardée en session.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from django.core import signing
from django.core.exceptions import SuspiciousOperation

from ..conf import get_setting

FORM_SALT = "refactions.form"
CONFIRM_SALT = "refactions.confirm"


def _loads(value: str, salt: str, max_age: Optional[int]) -> Any:
    if max_age is None:
        max_age = get_setting("TOKEN_MAX_AGE")
    try:
        return signing.loads(value or "", salt=salt, max_age=max_age)
    except signing.SignatureExpired as e:
        raise SuspiciousOperation(f"Expired reference-actions token: {e}") from e
    except signing.BadSignature as e:
        raise SuspiciousOperation(f"Invalid reference-actions token: {e}") from e


@dataclass(frozen=True)
class CorrelationToken:
    """
    Identifie une instance rendue d'un champ de référence : unique par rendu,
    deux formulaires ouverts sur le même champ ne se confondent pas.
    """

    key: str
    field: str
    entity_type: str

    @classmethod
    def new(cls, field_name: str, entity_type: str) -> "CorrelationToken":
        return cls(key=uuid.uuid4().hex, field=field_name, entity_type=entity_type)

    def dumps(self) -> str:
        return signing.dumps({"k": self.key, "f": self.field, "t": self.entity_type}, salt=FORM_SALT)

    @classmethod
    def loads(cls, value: str, *, max_age: Optional[int] = None) -> "CorrelationToken":
        data = _loads(value, FORM_SALT, max_age)
        try:
            return cls(key=str(data["k"]), field=str(data["f"]), entity_type=str(data["t"]))
        except (KeyError, TypeError) as e:
            raise SuspiciousOperation("Malformed reference-actions token") from e

    @property
    def selector(self) -> str:
        return messages_selector(self.key)


@dataclass(frozen=True)
class ConfirmationTicket:
    """Ce que la page de confirmation reçoit : action, entités éligibles, retour."""

    action_id: str
    entity_type: str
    ids: Tuple[str, ...]
    destination: str = ""
    correlation: str = ""

    def dumps(self) -> str:
        return signing.dumps(
            {
                "a": self.action_id,
                "t": self.entity_type,
                "ids": list(self.ids),
                "d": self.destination,
                "c": self.correlation,
            },
            salt=CONFIRM_SALT,
        )

    @classmethod
    def loads(cls, value: str, *, max_age: Optional[int] = None) -> "ConfirmationTicket":
        data = _loads(value, CONFIRM_SALT, max_age)
        try:
            return cls(
                action_id=str(data["a"]),
                entity_type=str(data["t"]),
                ids=tuple(str(i) for i in data["ids"]),
                destination=str(data.get("d") or ""),
                correlation=str(data.get("c") or ""),
            )
        except (KeyError, TypeError) as e:
            raise SuspiciousOperation("Malformed confirmation token") from e


def messages_selector(key: str = "") -> str:
    if not key:
        return "[data-reference-actions-messages]"
    return f'[data-reference-actions-messages="{key}"]'
