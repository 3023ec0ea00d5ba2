# backend/refactions/constants.py

from enum import StrEnum  # Python 3.11+

class DispatchState(StrEnum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    DONE = "done"

class IncludeExclude(StrEnum):
    INCLUDE = "include"
    EXCLUDE = "exclude"

class Display(StrEnum):
    BUTTONS = "buttons"
    SELECT = "select"

# Résultats du callback par entité
RESULT_APPLIED = "applied"
RESULT_MISSING = "missing"

# Noms des champs POST ajoutés au formulaire d'édition
TRIGGER_NAME = "_refaction"
TOKEN_SUFFIX = "__refaction_token"
SELECT_SUFFIX = "__refaction_select"

JOB_NAME = "reference_action"
