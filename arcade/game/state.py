"""Board state management for Arcade Duels sessions"""

import random
from typing import Optional

from arcade.game import alignment, chooser, gravity, relay
from arcade.types.game import (
    AlignmentBoard, ChooserBoard, ChooserRound, Choice, GameKind,
    GravityBoard, Mark, RejectReason, RelayBoard, Verdict, VerdictStatus,
)


class StateManager:
    """Creates boards and applies already-authorized moves to them"""

    @staticmethod
    def create_board(
        game_kind: GameKind,
        rng: Optional[random.Random] = None,
        target_score: int = chooser.DEFAULT_TARGET_SCORE
    ):
        """Build the initial board for a game kind"""
        if game_kind == GameKind.CHOOSER:
            return ChooserBoard(target_score=target_score)
        if game_kind == GameKind.ALIGNMENT:
            return AlignmentBoard(cells=alignment.empty_cells())
        if game_kind == GameKind.GRAVITY:
            return GravityBoard(cells=gravity.empty_cells())
        if game_kind == GameKind.RELAY:
            return RelayBoard(rope=0, puzzle=relay.generate_puzzle(rng))
        raise ValueError(f"Unknown game kind: {game_kind}")

    @staticmethod
    def place_mark(
        board: AlignmentBoard,
        row: int,
        col: int,
        mark: Mark
    ) -> tuple[Optional[RejectReason], Verdict]:
        """Place a mark on an empty alignment cell and classify the board"""
        if board.cells[row][col] != Mark.EMPTY:
            return RejectReason.CELL_OCCUPIED, Verdict.ongoing()

        board.cells[row][col] = mark
        return None, alignment.check(board.cells)

    @staticmethod
    def drop_disc(
        board: GravityBoard,
        column: int,
        mark: Mark
    ) -> tuple[Optional[RejectReason], Verdict]:
        """Drop a disc into a column and classify the board around it"""
        try:
            row = gravity.drop(board.cells, column, mark)
        except gravity.ColumnFullError:
            return RejectReason.COLUMN_FULL, Verdict.ongoing()

        board.last_row = row
        board.last_col = column
        return None, gravity.check(board.cells, row, column)

    @staticmethod
    def record_choice(
        board: ChooserBoard,
        mark: Mark,
        choice: Choice
    ) -> Optional[RejectReason]:
        """Buffer a seat's choice for the current round"""
        if mark in board.choices:
            return RejectReason.CHOICE_ALREADY_SUBMITTED
        board.choices[mark] = choice
        board.submitted.append(mark)
        return None

    @staticmethod
    def round_ready(board: ChooserBoard) -> bool:
        return Mark.A in board.choices and Mark.B in board.choices

    @staticmethod
    def resolve_round(board: ChooserBoard, round_number: int) -> Verdict:
        """
        Resolve the buffered round and return the match verdict.

        A drawn round leaves the scores unchanged and is simply replayed.
        """
        choice_a = board.choices[Mark.A]
        choice_b = board.choices[Mark.B]
        round_verdict = chooser.resolve(choice_a, choice_b)

        if round_verdict.status == VerdictStatus.WIN:
            if round_verdict.winner == Mark.A:
                board.score_a += 1
            else:
                board.score_b += 1

        board.last_round = ChooserRound(
            round_number=round_number,
            choice_a=choice_a,
            choice_b=choice_b,
            verdict=round_verdict,
        )
        board.choices = {}
        board.submitted = []

        return chooser.match_verdict(board.score_a, board.score_b, board.target_score)

    @staticmethod
    def answer_puzzle(
        board: RelayBoard,
        mark: Mark,
        answer: int,
        round_number: int,
        rng: Optional[random.Random] = None
    ) -> tuple[Optional[RejectReason], Verdict]:
        """
        Apply a relay answer to the puzzle of ``round_number``.

        An answer for an earlier round, or a wrong answer, leaves the board
        untouched. A correct answer pulls the rope and, unless the match is
        over, deals the next puzzle.
        """
        if round_number != board.round_number:
            return RejectReason.STALE_ROUND, Verdict.ongoing()
        if answer != board.puzzle.correct_index:
            return RejectReason.WRONG_ANSWER, Verdict.ongoing()

        board.rope = relay.pull(board.rope, mark)
        verdict = relay.check(board.rope)
        if not verdict.is_over:
            board.puzzle = relay.generate_puzzle(rng)
            board.round_number += 1
        return None, verdict
