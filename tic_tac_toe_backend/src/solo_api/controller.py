import asyncio
import functools
import logging
import random
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from . import config
from .core import (
    MARKS,
    Board,
    Line,
    best_move,
    empty_board,
    is_full,
    other_mark,
    winner,
)

logger = logging.getLogger(__name__)

FIRST_MARK = "X"


class Phase(str, Enum):
    AWAITING_HUMAN = "awaiting_human"
    AWAITING_COMPUTER = "awaiting_computer"
    ROUND_OVER = "round_over"


class RoundOutcome(str, Enum):
    HUMAN_WIN = "human"
    COMPUTER_WIN = "computer"
    DRAW = "draw"
    IN_PROGRESS = "in_progress"


class MoveKind(str, Enum):
    """Advisory notifications, e.g. for sound cues."""
    HUMAN = "human"
    COMPUTER = "ai"
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


_RESULT_KINDS = {
    RoundOutcome.HUMAN_WIN: MoveKind.WIN,
    RoundOutcome.COMPUTER_WIN: MoveKind.LOSE,
    RoundOutcome.DRAW: MoveKind.DRAW,
}


@dataclass
class Score:
    wins: int = 0
    losses: int = 0
    draws: int = 0

    def record(self, outcome: RoundOutcome) -> None:
        if outcome is RoundOutcome.HUMAN_WIN:
            self.wins += 1
        elif outcome is RoundOutcome.COMPUTER_WIN:
            self.losses += 1
        elif outcome is RoundOutcome.DRAW:
            self.draws += 1


# A scheduler runs callback after delay seconds and returns a handle with cancel().
Scheduler = Callable[[float, Callable[[], None]], Any]
Listener = Callable[[MoveKind], None]


# PUBLIC_INTERFACE
def asyncio_scheduler(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    """Schedule callback on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class RoundController:
    """Turn order, move application and scoring for one human against the computer.

    X always opens a round. Requests that break the rules (occupied cell,
    wrong turn, finished round) are ignored and leave the state untouched.
    """

    def __init__(
        self,
        human_mark: str = "X",
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
        delay: float = config.COMPUTER_MOVE_DELAY,
        listener: Optional[Listener] = None,
    ):
        if human_mark not in MARKS:
            raise ValueError(f"Unknown mark {human_mark!r}")
        self.human_mark = human_mark
        self.rng = rng
        self.scheduler = scheduler or asyncio_scheduler
        self.delay = delay
        self.listener = listener
        self.score = Score()
        self.round_id = 0
        self.board: Board = empty_board()
        self.phase = Phase.AWAITING_HUMAN
        self._pending = None
        self._scored: Optional[RoundOutcome] = None
        self._start_round()

    @property
    def computer_mark(self) -> str:
        return other_mark(self.human_mark)

    @property
    def mover(self) -> Optional[str]:
        if self.phase is Phase.AWAITING_HUMAN:
            return self.human_mark
        if self.phase is Phase.AWAITING_COMPUTER:
            return self.computer_mark
        return None

    @property
    def outcome(self) -> RoundOutcome:
        won = winner(self.board)
        if won is not None:
            return RoundOutcome.HUMAN_WIN if won.mark == self.human_mark else RoundOutcome.COMPUTER_WIN
        if is_full(self.board):
            return RoundOutcome.DRAW
        return RoundOutcome.IN_PROGRESS

    @property
    def winning_line(self) -> Optional[Line]:
        won = winner(self.board)
        return won.line if won is not None else None

    @property
    def has_pending_move(self) -> bool:
        return self._pending is not None

    # PUBLIC_INTERFACE
    def play_human_move(self, index: int) -> bool:
        """Place the human's mark at index. Returns False when the move is ignored."""
        if self.phase is not Phase.AWAITING_HUMAN:
            return False
        if not 0 <= index < len(self.board) or self.board[index] is not None:
            return False
        self.board[index] = self.human_mark
        logger.debug("Round %d: human %s at %d", self.round_id, self.human_mark, index)
        self._notify(MoveKind.HUMAN)
        self._advance(Phase.AWAITING_COMPUTER)
        return True

    # PUBLIC_INTERFACE
    def restart_round(self) -> None:
        """Discard the board and any pending computer move, then start over."""
        self._start_round()

    # PUBLIC_INTERFACE
    def set_human_mark(self, mark: str) -> bool:
        """Switch sides and start a fresh round.

        Unknown marks and the mark the human already holds are ignored, so the
        current round and any pending computer move are left alone.
        """
        if mark not in MARKS or mark == self.human_mark:
            return False
        self.human_mark = mark
        self._start_round()
        return True

    # PUBLIC_INTERFACE
    def refresh(self) -> RoundOutcome:
        """Recompute the outcome of the current board and settle the round if it is decided."""
        outcome = self.outcome
        if outcome is not RoundOutcome.IN_PROGRESS:
            self._finish(outcome)
        return outcome

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Cancel the pending computer move, if any."""
        self._cancel_pending()

    def snapshot(self) -> Dict[str, Any]:
        line = self.winning_line
        return {
            "board": list(self.board),
            "phase": self.phase.value,
            "mover": self.mover,
            "outcome": self.outcome.value,
            "winning_line": list(line) if line is not None else None,
            "human_mark": self.human_mark,
            "computer_mark": self.computer_mark,
            "score": asdict(self.score),
            "round_id": self.round_id,
        }

    def _start_round(self) -> None:
        self._cancel_pending()
        self.round_id += 1
        self.board = empty_board()
        self._scored = None
        if self.human_mark == FIRST_MARK:
            self.phase = Phase.AWAITING_HUMAN
        else:
            self._enter_computer_turn()

    def _advance(self, next_phase: Phase) -> None:
        outcome = self.outcome
        if outcome is not RoundOutcome.IN_PROGRESS:
            self._finish(outcome)
        elif next_phase is Phase.AWAITING_COMPUTER:
            self._enter_computer_turn()
        else:
            self.phase = next_phase

    def _enter_computer_turn(self) -> None:
        self.phase = Phase.AWAITING_COMPUTER
        callback = functools.partial(self._play_computer_move, self.round_id)
        self._pending = self.scheduler(self.delay, callback)

    def _play_computer_move(self, round_id: int) -> None:
        if round_id != self.round_id or self.phase is not Phase.AWAITING_COMPUTER:
            logger.warning("Discarding stale computer move for round %d", round_id)
            return
        self._pending = None
        index = best_move(self.board, self.computer_mark, self.human_mark, self.rng)
        if index is None or self.board[index] is not None:
            return
        self.board[index] = self.computer_mark
        logger.debug("Round %d: computer %s at %d", self.round_id, self.computer_mark, index)
        self._notify(MoveKind.COMPUTER)
        self._advance(Phase.AWAITING_HUMAN)

    def _finish(self, outcome: RoundOutcome) -> None:
        self.phase = Phase.ROUND_OVER
        if self._scored is outcome:
            return
        self._scored = outcome
        self.score.record(outcome)
        logger.info("Round %d finished: %s (score %s)", self.round_id, outcome.value, self.score)
        self._notify(_RESULT_KINDS[outcome])

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _notify(self, kind: MoveKind) -> None:
        if self.listener is None:
            return
        try:
            self.listener(kind)
        except Exception:
            logger.exception("Listener failed on %s", kind.value)
