"""Round resolution for the chooser game (rock/paper/scissors)"""

from typing import Dict

from arcade.types.game import Choice, Mark, Verdict

DEFAULT_TARGET_SCORE = 3

# Each choice beats the one it maps to
BEATS: Dict[Choice, Choice] = {
    Choice.ROCK: Choice.SCISSORS,
    Choice.PAPER: Choice.ROCK,
    Choice.SCISSORS: Choice.PAPER,
}


def resolve(choice_a: Choice, choice_b: Choice) -> Verdict:
    """Resolve one round. Seat A submitted ``choice_a``, seat B ``choice_b``."""
    if choice_a == choice_b:
        return Verdict.draw()
    if BEATS[choice_a] == choice_b:
        return Verdict.win(Mark.A)
    return Verdict.win(Mark.B)


def match_verdict(score_a: int, score_b: int, target_score: int = DEFAULT_TARGET_SCORE) -> Verdict:
    """First seat to reach ``target_score`` round wins takes the match."""
    if score_a >= target_score:
        return Verdict.win(Mark.A)
    if score_b >= target_score:
        return Verdict.win(Mark.B)
    return Verdict.ongoing()
