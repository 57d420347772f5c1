import logging
import random
from typing import Dict, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

Board = List[Optional[str]]
Line = Tuple[int, int, int]

MARKS = ("X", "O")

# Rows, then columns, then diagonals.
LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

WIN_SCORE = 10


class BoardCorruptedError(ValueError):
    """Raised when both marks own a completed line, which legal play cannot produce."""


class WinResult(NamedTuple):
    mark: str
    line: Line


# PUBLIC_INTERFACE
def empty_board() -> Board:
    """Return a fresh board of 9 empty cells."""
    return [None] * 9


# PUBLIC_INTERFACE
def other_mark(mark: str) -> str:
    return "O" if mark == "X" else "X"


# PUBLIC_INTERFACE
def empty_cells(board: Board) -> List[int]:
    return [i for i, cell in enumerate(board) if cell is None]


# PUBLIC_INTERFACE
def is_full(board: Board) -> bool:
    return all(cell is not None for cell in board)


# PUBLIC_INTERFACE
def winner(board: Board) -> Optional[WinResult]:
    """Return the first completed line and its mark, or None.

    Lines are scanned in a fixed order. A board where both marks have a
    completed line is rejected with BoardCorruptedError.
    """
    found: Optional[WinResult] = None
    for line in LINES:
        a, b, c = line
        mark = board[a]
        if mark is not None and mark == board[b] == board[c]:
            if found is None:
                found = WinResult(mark, line)
            elif found.mark != mark:
                raise BoardCorruptedError(
                    f"Both marks completed a line: {found.line} and {line}"
                )
    return found


class _Search:
    """One minimax run from a fixed root position.

    The board is a private copy that is mutated in place and restored after
    every trial placement. Scores are memoised per board: inside one search a
    position is always reached at the same depth, so the cached score is the
    one the recursion would compute again.
    """

    def __init__(self, board: Board, computer_mark: str, human_mark: str):
        self.board = list(board)
        self.computer_mark = computer_mark
        self.human_mark = human_mark
        self.nodes = 0
        self._memo: Dict[Tuple[Optional[str], ...], int] = {}

    def score_root(self) -> Dict[int, int]:
        scores = {}
        for i in empty_cells(self.board):
            self.board[i] = self.computer_mark
            scores[i] = self._minimax(0, maximizing=False)
            self.board[i] = None
        return scores

    def _minimax(self, depth: int, maximizing: bool) -> int:
        key = tuple(self.board)
        cached = self._memo.get(key)
        if cached is not None:
            return cached
        self.nodes += 1

        won = winner(self.board)
        if won is not None:
            score = WIN_SCORE - depth if won.mark == self.computer_mark else depth - WIN_SCORE
        elif is_full(self.board):
            score = 0
        elif maximizing:
            score = -WIN_SCORE - 1
            for i in empty_cells(self.board):
                self.board[i] = self.computer_mark
                score = max(score, self._minimax(depth + 1, False))
                self.board[i] = None
        else:
            score = WIN_SCORE + 1
            for i in empty_cells(self.board):
                self.board[i] = self.human_mark
                score = min(score, self._minimax(depth + 1, True))
                self.board[i] = None

        self._memo[key] = score
        return score


# PUBLIC_INTERFACE
def score_moves(board: Board, computer_mark: str, human_mark: str) -> Dict[int, int]:
    """Minimax score of every empty cell, as seen by the computer."""
    search = _Search(board, computer_mark, human_mark)
    scores = search.score_root()
    logger.debug("Searched %d positions, root scores %s", search.nodes, scores)
    return scores


# PUBLIC_INTERFACE
def best_moves(board: Board, computer_mark: str, human_mark: str) -> List[int]:
    """All indices that reach the best minimax score, in ascending order."""
    if winner(board) is not None:
        return []
    scores = score_moves(board, computer_mark, human_mark)
    if not scores:
        return []
    top = max(scores.values())
    return [i for i, score in sorted(scores.items()) if score == top]


# PUBLIC_INTERFACE
def best_move(
    board: Board,
    computer_mark: str,
    human_mark: str,
    rng: Optional[random.Random] = None,
) -> Optional[int]:
    """Pick an optimal move for computer_mark, breaking ties at random.

    Returns None when the board is full or already decided.
    """
    candidates = best_moves(board, computer_mark, human_mark)
    if not candidates:
        return None
    chooser = rng if rng is not None else random
    return chooser.choice(candidates)
