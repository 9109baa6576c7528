"""Win detection for the 3x3 alignment game"""

from typing import List, Sequence, Tuple

from arcade.types.game import Mark, Verdict

SIZE = 3

Line = Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]


def _lines() -> List[Line]:
    rows = [tuple((r, c) for c in range(SIZE)) for r in range(SIZE)]
    cols = [tuple((r, c) for r in range(SIZE)) for c in range(SIZE)]
    diagonals = [
        ((0, 0), (1, 1), (2, 2)),
        ((0, 2), (1, 1), (2, 0)),
    ]
    return rows + cols + diagonals


LINES: List[Line] = _lines()


def empty_cells() -> List[List[Mark]]:
    return [[Mark.EMPTY] * SIZE for _ in range(SIZE)]


def is_full(cells: Sequence[Sequence[Mark]]) -> bool:
    return all(cell != Mark.EMPTY for row in cells for cell in row)


def check(cells: Sequence[Sequence[Mark]]) -> Verdict:
    """
    Classify an alignment board.

    Scans 3 rows, 3 columns and 2 diagonals for three identical non-empty
    marks. Draw only when the board is full with no completed line.
    """
    for line in LINES:
        (r0, c0), (r1, c1), (r2, c2) = line
        first = cells[r0][c0]
        if first != Mark.EMPTY and first == cells[r1][c1] == cells[r2][c2]:
            return Verdict.win(first)

    if is_full(cells):
        return Verdict.draw()

    return Verdict.ongoing()
