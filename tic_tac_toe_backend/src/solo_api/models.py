from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal

from .themes import THEME_IDS


# PUBLIC_INTERFACE
class TokenResponse(BaseModel):
    """Returned session token after a session is created."""
    access_token: str = Field(..., description="JWT access token identifying the game session.")
    token_type: str = Field(default="bearer", description="Type of the token.")


# PUBLIC_INTERFACE
class MoveRequest(BaseModel):
    """Request model for the human's move."""
    index: int = Field(..., ge=0, le=8, description="Cell index (0-8, row-major).")


# PUBLIC_INTERFACE
class MarkRequest(BaseModel):
    """Request model for choosing the human's mark. Starts a new round."""
    mark: Literal["X", "O"] = Field(..., description="Mark the human plays with.")


# PUBLIC_INTERFACE
class ScoreResponse(BaseModel):
    wins: int = 0
    losses: int = 0
    draws: int = 0


# PUBLIC_INTERFACE
class PreferencesRequest(BaseModel):
    """Partial update of the presentation preferences."""
    theme: Optional[str] = Field(None, description="Theme identifier.")
    sound_on: Optional[bool] = Field(None, description="Whether sound cues are pushed.")

    @field_validator("theme")
    @classmethod
    def theme_must_exist(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in THEME_IDS:
            raise ValueError(f"Unknown theme {value!r}")
        return value


# PUBLIC_INTERFACE
class PreferencesResponse(BaseModel):
    theme: str
    sound_on: bool


# PUBLIC_INTERFACE
class ThemeEntry(BaseModel):
    id: str
    label: str


# PUBLIC_INTERFACE
class ThemesResponse(BaseModel):
    themes: List[ThemeEntry]


# PUBLIC_INTERFACE
class GameStateResponse(BaseModel):
    """Everything the UI needs to draw the board, status line and scoreboard."""
    board: List[Optional[str]] = Field(..., description="9 cells, row-major; X, O or None.")
    phase: Literal["awaiting_human", "awaiting_computer", "round_over"]
    mover: Optional[str] = Field(None, description="Mark to move next, None once the round is over.")
    outcome: Literal["human", "computer", "draw", "in_progress"]
    winning_line: Optional[List[int]] = Field(None, description="Indices to highlight after a win.")
    human_mark: str
    computer_mark: str
    score: ScoreResponse
    round_id: int
    status: str = Field(..., description="Themed status sentence.")
    theme: str
    sound_on: bool
    accepted: bool = Field(default=True, description="False when the request was ignored by the game rules.")
