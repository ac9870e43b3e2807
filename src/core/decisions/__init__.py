"""Decision model and pure builders."""

from src.core.decisions import builder
from src.core.decisions.builder import new_decision_id, normalize_confidence
from src.core.decisions.models import Action, ActionKind, Decision, IntentKind

__all__ = [
    "Action",
    "ActionKind",
    "Decision",
    "IntentKind",
    "builder",
    "new_decision_id",
    "normalize_confidence",
]
