"""Puzzle generation and rope tracking for the relay tug-of-war game

Every puzzle offers four candidate answers. The first player to pick the
correct one pulls the rope a step toward their side; the match ends the
moment the rope reaches either end.
"""

import random
from typing import Callable, Dict, List, Optional

from arcade.types.game import Mark, Puzzle, PuzzleKind, Verdict

ROPE_LIMIT = 3

COMPARISON_GROUPS = [
    ("Which is the tallest?", [
        ("Eiffel Tower", 330),
        ("Empire State Building", 443),
        ("Burj Khalifa", 828),
        ("Shanghai Tower", 632),
    ]),
    ("Which lives the longest?", [
        ("Cat", 15),
        ("Dog", 13),
        ("Elephant", 70),
        ("Horse", 30),
    ]),
    ("Which country has the largest population?", [
        ("France", 67),
        ("Germany", 83),
        ("Spain", 47),
        ("Italy", 59),
    ]),
]

COUNTING_EMOJIS = ["🍎", "🍌", "🍇", "🍊", "🍓"]


def _near_misses(
    rng: random.Random,
    answer: int,
    low_offset: int,
    high_offset: int,
    upper_bound: Optional[int] = None
) -> List[int]:
    """Three distinct positive wrong answers close to ``answer``."""
    wrong: List[int] = []
    while len(wrong) < 3:
        candidate = answer + rng.randint(low_offset, high_offset)
        if candidate == answer or candidate <= 0 or candidate in wrong:
            continue
        if upper_bound is not None and candidate > upper_bound:
            continue
        wrong.append(candidate)
    return wrong


def _numeric_puzzle(
    rng: random.Random,
    kind: PuzzleKind,
    question: str,
    answer: int,
    wrong: List[int]
) -> Puzzle:
    choices = [answer] + wrong
    rng.shuffle(choices)
    return Puzzle(
        kind=kind,
        question=question,
        choices=[str(c) for c in choices],
        correct_index=choices.index(answer),
    )


def arithmetic_puzzle(rng: random.Random) -> Puzzle:
    operation = rng.choice(["+", "-", "*"])
    if operation == "+":
        left = rng.randint(1, 50)
        right = rng.randint(1, 50)
        answer = left + right
    elif operation == "-":
        left = rng.randint(20, 69)
        right = rng.randint(1, left - 1)
        answer = left - right
    else:
        left = rng.randint(1, 12)
        right = rng.randint(1, 12)
        answer = left * right

    return _numeric_puzzle(
        rng,
        PuzzleKind.ARITHMETIC,
        f"What is {left} {operation} {right}?",
        answer,
        _near_misses(rng, answer, -5, 4),
    )


def sequence_puzzle(rng: random.Random) -> Puzzle:
    pattern = rng.choice(["increment", "double", "fibonacci"])
    if pattern == "increment":
        step = rng.randint(1, 5)
        start = rng.randint(1, 10)
        numbers = [start, start + step, start + step * 2]
        answer = start + step * 3
    elif pattern == "double":
        start = rng.randint(1, 3)
        numbers = [start, start * 2, start * 4]
        answer = start * 8
    else:
        a = rng.randint(1, 3)
        b = rng.randint(1, 3)
        # 1, 2, 3 would also read as an increment
        while b == a * 2:
            b = rng.randint(1, 3)
        numbers = [a, b, a + b]
        answer = b + (a + b)

    return _numeric_puzzle(
        rng,
        PuzzleKind.SEQUENCE,
        f"What comes next: {', '.join(str(n) for n in numbers)}, ?",
        answer,
        _near_misses(rng, answer, -3, 2),
    )


def comparison_puzzle(rng: random.Random) -> Puzzle:
    question, group = rng.choice(COMPARISON_GROUPS)
    items = list(group)
    rng.shuffle(items)
    best = max(items, key=lambda item: item[1])
    return Puzzle(
        kind=PuzzleKind.COMPARISON,
        question=question,
        choices=[name for name, _ in items],
        correct_index=items.index(best),
    )


def counting_puzzle(rng: random.Random) -> Puzzle:
    target = rng.choice(COUNTING_EMOJIS)
    others = [e for e in COUNTING_EMOJIS if e != target]
    count = rng.randint(3, 10)

    sequence = [target] * count
    sequence += [rng.choice(others) for _ in range(rng.randint(2, 6))]
    rng.shuffle(sequence)

    return _numeric_puzzle(
        rng,
        PuzzleKind.COUNTING,
        f"How many {target} are there?\n\n{' '.join(sequence)}",
        count,
        _near_misses(rng, count, -2, 2, upper_bound=len(sequence)),
    )


GENERATORS: Dict[PuzzleKind, Callable[[random.Random], Puzzle]] = {
    PuzzleKind.ARITHMETIC: arithmetic_puzzle,
    PuzzleKind.SEQUENCE: sequence_puzzle,
    PuzzleKind.COMPARISON: comparison_puzzle,
    PuzzleKind.COUNTING: counting_puzzle,
}


def generate_puzzle(rng: Optional[random.Random] = None) -> Puzzle:
    """Pick one of the four puzzle kinds uniformly and generate it."""
    rng = rng or random.Random()
    kind = rng.choice(list(GENERATORS))
    return GENERATORS[kind](rng)


def pull(rope: int, mark: Mark) -> int:
    """Move the rope one step toward the seat that answered correctly."""
    step = 1 if mark == Mark.A else -1
    return max(-ROPE_LIMIT, min(ROPE_LIMIT, rope + step))


def check(rope: int) -> Verdict:
    if rope >= ROPE_LIMIT:
        return Verdict.win(Mark.A)
    if rope <= -ROPE_LIMIT:
        return Verdict.win(Mark.B)
    return Verdict.ongoing()
