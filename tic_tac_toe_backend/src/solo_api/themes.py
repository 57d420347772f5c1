from typing import Dict, List, Optional

from .controller import RoundOutcome

DEFAULT_THEME = "cosmic"

THEMES: List[Dict[str, str]] = [
    {"id": "cosmic", "label": "Cosmic"},
    {"id": "western", "label": "Western"},
    {"id": "disco", "label": "Disco"},
]

THEME_IDS = tuple(theme["id"] for theme in THEMES)

_RESULT_TEXT = {
    RoundOutcome.HUMAN_WIN: {
        "cosmic": "You aligned the stars. Victory.",
        "western": "You outdrew the outlaw. Victory.",
        "disco": "You owned the dance floor. Victory.",
    },
    RoundOutcome.COMPUTER_WIN: {
        "cosmic": "Astro AI controls this sector.",
        "western": "The outlaw got the drop on you.",
        "disco": "The DJ dropped a beat you couldn't dodge.",
    },
    RoundOutcome.DRAW: {
        "cosmic": "Balanced universe. Draw.",
        "western": "Standoff at high noon. Draw.",
        "disco": "Same groove, same score. Draw.",
    },
}

_THINKING_TEXT = {
    "cosmic": "Astro AI is plotting…",
    "western": "The outlaw is thinking…",
    "disco": "The DJ is cueing up a move…",
}


# PUBLIC_INTERFACE
def is_known_theme(theme: str) -> bool:
    return theme in THEME_IDS


# PUBLIC_INTERFACE
def status_message(theme: str, outcome: RoundOutcome, mover: Optional[str], human_mark: str) -> str:
    """Status line shown under the board for the given theme."""
    if not is_known_theme(theme):
        theme = DEFAULT_THEME
    if outcome in _RESULT_TEXT:
        return _RESULT_TEXT[outcome][theme]
    if mover == human_mark:
        return f"Your move ({human_mark})."
    return _THINKING_TEXT[theme]
