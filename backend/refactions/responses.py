# backend/refactions/responses.py
"""
Réponses aux requêtes « en page » (AJAX) : une liste de commandes JSON que le
client applique (message, remplacement de balisage, ouverture/fermeture de dialogue).
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from django.http import JsonResponse


def wants_json(request) -> bool:
    if request.headers.get("x-requested-with") == "XMLHttpRequest":
        return True
    return "application/json" in request.headers.get("accept", "")


class CommandResponse:
    def __init__(self) -> None:
        self.commands: List[Dict[str, Any]] = []

    def add(self, command: str, **args: Any) -> "CommandResponse":
        self.commands.append({"command": command, **args})
        return self

    def message(self, text: str, *, level: str = "status", selector: Optional[str] = None, clear_previous: bool = True):
        return self.add("message", text=text, level=level, selector=selector, clear_previous=clear_previous)

    def messages(self, texts: Iterable[str], *, level: str = "warning", selector: Optional[str] = None):
        # Seul le premier message remplace les précédents
        for i, text in enumerate(texts):
            self.message(text, level=level, selector=selector, clear_previous=(i == 0))
        return self

    def replace(self, selector: str, html: str):
        return self.add("replace", selector=selector, html=html)

    def open_dialog(self, title: str, *, url: Optional[str] = None, html: Optional[str] = None, options: Optional[dict] = None):
        return self.add("open_dialog", title=title, url=url, html=html, options=dict(options or {}))

    def close_dialog(self):
        return self.add("close_dialog")

    def to_response(self, status: int = 200) -> JsonResponse:
        return JsonResponse({"commands": self.commands}, status=status)
