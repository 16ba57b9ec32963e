"""Stock screener -- natural-language queries, quick screens and explanations.

Execution against live data lives in :mod:`screener.executor`, which pulls in
the data providers; import it explicitly.
"""

from screener.explain import explain
from screener.models import (
    QuickScreen,
    SavedScreen,
    ScreenerCriteria,
    ScreenerResponse,
    ScreenerResult,
    ScreenRequest,
)
from screener.parser import parse_query
from screener.presets import QUICK_SCREENS, get_quick_screen

__all__ = [
    "QUICK_SCREENS",
    "QuickScreen",
    "SavedScreen",
    "ScreenRequest",
    "ScreenerCriteria",
    "ScreenerResponse",
    "ScreenerResult",
    "explain",
    "get_quick_screen",
    "parse_query",
]
