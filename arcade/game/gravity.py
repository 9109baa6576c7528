"""Disc placement and win detection for the 6x7 gravity four-in-a-row game"""

from typing import List, Sequence

from arcade.types.game import Mark, Verdict

ROWS = 6
COLS = 7
CONNECT = 4

# Horizontal, vertical, descending diagonal, ascending diagonal
AXES = [(0, 1), (1, 0), (1, 1), (1, -1)]


class ColumnFullError(ValueError):
    """Raised when dropping into a column with no empty cell"""


def empty_cells() -> List[List[Mark]]:
    return [[Mark.EMPTY] * COLS for _ in range(ROWS)]


def is_column_full(cells: Sequence[Sequence[Mark]], column: int) -> bool:
    return cells[0][column] != Mark.EMPTY


def drop(cells: List[List[Mark]], column: int, mark: Mark) -> int:
    """Fill the lowest empty cell of ``column`` with ``mark`` and return its row."""
    if not 0 <= column < COLS:
        raise ValueError(f"Column {column} out of range")
    if is_column_full(cells, column):
        raise ColumnFullError(f"Column {column} is full")

    for row in range(ROWS - 1, -1, -1):
        if cells[row][column] == Mark.EMPTY:
            cells[row][column] = mark
            return row

    raise ColumnFullError(f"Column {column} is full")


def _count_direction(
    cells: Sequence[Sequence[Mark]],
    row: int,
    col: int,
    d_row: int,
    d_col: int,
    mark: Mark
) -> int:
    count = 0
    r, c = row + d_row, col + d_col
    while 0 <= r < ROWS and 0 <= c < COLS and cells[r][c] == mark:
        count += 1
        r += d_row
        c += d_col
    return count


def check(cells: Sequence[Sequence[Mark]], last_row: int, last_col: int) -> Verdict:
    """
    Classify the board after the disc at (last_row, last_col) was placed.

    Only lines through the last disc are examined, so the result is only
    correct when called with the coordinates of the move just made.
    """
    mark = cells[last_row][last_col]
    if mark == Mark.EMPTY:
        return Verdict.ongoing()

    for d_row, d_col in AXES:
        count = 1
        count += _count_direction(cells, last_row, last_col, d_row, d_col, mark)
        count += _count_direction(cells, last_row, last_col, -d_row, -d_col, mark)
        if count >= CONNECT:
            return Verdict.win(mark)

    # Top row full means the whole grid is full
    if all(cell != Mark.EMPTY for cell in cells[0]):
        return Verdict.draw()

    return Verdict.ongoing()
