import random

import pytest

from solo_api.core import (
    LINES,
    MARKS,
    BoardCorruptedError,
    WinResult,
    best_move,
    best_moves,
    empty_board,
    empty_cells,
    is_full,
    other_mark,
    score_moves,
    winner,
)

X, O, _ = "X", "O", None


def reachable_boards():
    """Every board reachable by legal alternating play, X first."""
    seen = set()
    stack = [tuple(empty_board())]
    while stack:
        board = stack.pop()
        if board in seen:
            continue
        seen.add(board)
        if winner(list(board)) is not None or is_full(list(board)):
            continue
        mark = X if board.count(X) == board.count(O) else O
        for i, cell in enumerate(board):
            if cell is None:
                nxt = list(board)
                nxt[i] = mark
                stack.append(tuple(nxt))
    return [list(b) for b in seen]


def has_uniform_line(board):
    return any(all(board[i] == mark for i in line) for line in LINES for mark in MARKS)


def test_empty_board():
    board = empty_board()
    assert board == [None] * 9
    assert winner(board) is None
    assert not is_full(board)
    assert empty_cells(board) == list(range(9))


def test_other_mark():
    assert other_mark(X) == O
    assert other_mark(O) == X


@pytest.mark.parametrize("line", LINES)
def test_winner_detects_every_line(line):
    board = empty_board()
    for i in line:
        board[i] = O
    assert winner(board) == WinResult(O, line)


def test_winner_matches_lines_on_all_reachable_boards():
    boards = reachable_boards()
    assert len(boards) == 5478
    for board in boards:
        assert (winner(board) is not None) == has_uniform_line(board)


def test_top_row_completed_by_human():
    board = [X, X, _, O, O, _, _, _, _]
    assert winner(board) is None
    board[2] = X
    assert winner(board) == WinResult(X, (0, 1, 2))


def test_full_board_without_line_is_a_draw():
    board = [X, O, X, X, O, O, O, X, X]
    assert is_full(board)
    assert winner(board) is None


def test_both_marks_winning_is_rejected():
    board = [X, X, X, O, O, O, _, _, _]
    with pytest.raises(BoardCorruptedError):
        winner(board)


def test_engine_answers_centre_with_corner():
    board = empty_board()
    board[4] = X
    assert best_moves(board, O, X) == [0, 2, 6, 8]
    rng = random.Random(7)
    for _ in range(20):
        assert best_move(board, O, X, rng) in (0, 2, 6, 8)


def test_engine_takes_immediate_win():
    board = [O, O, _, X, X, _, X, _, _]
    scores = score_moves(board, O, X)
    assert scores[2] == 10
    assert best_moves(board, O, X) == [2]


def test_engine_blocks():
    board = [X, X, _, _, O, _, _, _, _]
    assert best_moves(board, O, X) == [2]


def test_scores_account_for_depth():
    # X has two open lines; whatever O plays, X wins on the next ply.
    board = [X, _, O, _, O, _, X, _, X]
    assert score_moves(board, O, X) == {1: -9, 3: -9, 5: -9, 7: -9}
    assert best_moves(board, O, X) == [1, 3, 5, 7]


def test_tie_break_uses_injected_random_source(last_choice):
    board = empty_board()
    board[4] = X
    assert best_move(board, O, X, last_choice) == 8


def test_engine_does_not_mutate_board():
    board = [X, _, _, _, O, _, _, _, X]
    before = list(board)
    best_move(board, O, X, random.Random(1))
    assert board == before


def test_engine_returns_none_without_moves():
    assert best_move([X, O, X, X, O, O, O, X, X], O, X) is None
    assert best_move([X, X, X, O, O, _, _, _, _], O, X) is None


def test_engine_never_picks_occupied_cell():
    rng = random.Random(3)
    open_boards = [
        b for b in sorted(reachable_boards(), key=str)
        if winner(b) is None and not is_full(b)
    ]
    for board in rng.sample(open_boards, 300):
        mover = X if board.count(X) == board.count(O) else O
        move = best_move(board, mover, other_mark(mover), rng)
        assert move is not None
        assert board[move] is None


def plain_minimax(board, depth, maximizing, computer_mark, human_mark):
    result = winner(board)
    if result is not None:
        return 10 - depth if result.mark == computer_mark else depth - 10
    if is_full(board):
        return 0
    mark = computer_mark if maximizing else human_mark
    scores = []
    for i in empty_cells(board):
        board[i] = mark
        scores.append(plain_minimax(board, depth + 1, not maximizing, computer_mark, human_mark))
        board[i] = None
    return max(scores) if maximizing else min(scores)


def test_memoised_scores_match_plain_minimax():
    rng = random.Random(11)
    open_boards = [
        b for b in sorted(reachable_boards(), key=str)
        if winner(b) is None and not is_full(b) and 9 - b.count(None) >= 2
    ]
    for board in rng.sample(open_boards, 60):
        mover = X if board.count(X) == board.count(O) else O
        human = other_mark(mover)
        expected = {}
        for i in empty_cells(board):
            trial = list(board)
            trial[i] = mover
            expected[i] = plain_minimax(trial, 0, False, mover, human)
        assert score_moves(board, mover, human) == expected
