"""Assistant command interpretation and routing.

This module implements:
- Bounded per-user command history
- Extraction of the structured intent from model output
- Intent routing (computed and pass-through intents)
- The command pipeline that ties them together
"""

from .errors import AssistantError, Outcome, StatusClass, http_status_for
from .history import MAX_HISTORY_ITEMS, HistoryStore, get_max_history_items
from .pipeline import CommandPipeline, PipelineResult, system_clock
from .response_parser import ParsedIntent, ParseFailure, parse_model_response
from .router import IntentRouter, RoutingResult

__all__ = [
    "AssistantError",
    "CommandPipeline",
    "HistoryStore",
    "IntentRouter",
    "MAX_HISTORY_ITEMS",
    "Outcome",
    "ParseFailure",
    "ParsedIntent",
    "PipelineResult",
    "RoutingResult",
    "StatusClass",
    "get_max_history_items",
    "http_status_for",
    "parse_model_response",
    "system_clock",
]
