"""Tests for session lifecycle, turn discipline and settlement."""

import asyncio

import pytest

from arcade.config import ArcadeConfig
from arcade.errors.handler import WalletError
from arcade.storage.registry import GameRegistry, InMemoryRegistryStore
from arcade.types.game import (
    Choice, GameKind, Mark, MoveOutcome, RejectReason, SessionEventType,
    SessionStatus, SettlementStatus,
)
from arcade.wallet import InMemoryWallet

COMMUNITY = "guild"
PLAYERS = ["alice", "bob"]

ALIGNMENT_WIN_FOR_A = [
    ("alice", [0, 0]),
    ("bob", [1, 1]),
    ("alice", [0, 1]),
    ("bob", [2, 0]),
    ("alice", [0, 2]),
]

ALIGNMENT_DRAW = [
    ("alice", [0, 0]),
    ("bob", [0, 1]),
    ("alice", [0, 2]),
    ("bob", [1, 1]),
    ("alice", [1, 0]),
    ("bob", [1, 2]),
    ("alice", [2, 1]),
    ("bob", [2, 0]),
    ("alice", [2, 2]),
]


class FailingWallet(InMemoryWallet):
    async def transfer(self, from_user_id, to_user_id, community_id, amount):
        raise WalletError("wallet service unavailable")


class FullDiskStore(InMemoryRegistryStore):
    async def increment(self, community_id, key, amount=1):
        raise OSError("disk full")


async def _play(manager, session_id, moves):
    results = []
    for player_id, move in moves:
        results.append(await manager.submit_move(session_id, player_id, move))
    return results


def _relay_answer(session):
    return [session.board.puzzle.correct_index, session.board.round_number]


async def _play_chooser_round(manager, session_id, choice_a, choice_b):
    return await asyncio.gather(
        manager.submit_move(session_id, "alice", choice_a),
        manager.submit_move(session_id, "bob", choice_b),
    )


@pytest.mark.asyncio
async def test_alignment_example_settles_once(session_manager, wallet, registry):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    results = await _play(session_manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    assert [r.outcome for r in results[:-1]] == [MoveOutcome.ACCEPTED] * 4
    final = results[-1]
    assert final.outcome == MoveOutcome.GAME_OVER
    assert final.result.winner_id == "alice"
    assert final.result.loser_id == "bob"
    assert final.result.settlement == SettlementStatus.SETTLED
    assert final.board.cells[0] == [Mark.A, Mark.A, Mark.A]

    assert wallet.transfers == [("bob", "alice", COMMUNITY, 10)]
    assert wallet.balances[(COMMUNITY, "alice")] == 110
    assert wallet.balances[(COMMUNITY, "bob")] == 90

    # Later moves and queries never settle again
    late = await session_manager.submit_move(session.session_id, "bob", [2, 2])
    assert late.reason == RejectReason.SESSION_ALREADY_FINISHED
    assert session_manager.get(session.session_id).result == final.result
    assert len(wallet.transfers) == 1
    assert (await registry.get_counts(COMMUNITY))[GameKind.ALIGNMENT] == 1


@pytest.mark.asyncio
async def test_alternation_is_enforced(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)
    sid = session.session_id

    assert (await session_manager.submit_move(sid, "bob", [0, 0])).reason == RejectReason.NOT_YOUR_TURN
    assert (await session_manager.submit_move(sid, "alice", [0, 0])).outcome == MoveOutcome.ACCEPTED
    assert (await session_manager.submit_move(sid, "alice", [0, 1])).reason == RejectReason.NOT_YOUR_TURN
    assert (await session_manager.submit_move(sid, "bob", [0, 0])).reason == RejectReason.CELL_OCCUPIED

    # Rejections do not consume the turn
    assert session_manager.get(sid).turn == "bob"
    assert (await session_manager.submit_move(sid, "bob", [1, 1])).outcome == MoveOutcome.ACCEPTED


@pytest.mark.asyncio
async def test_malformed_and_foreign_moves_are_rejected(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.GRAVITY)
    sid = session.session_id

    assert (await session_manager.submit_move(sid, "mallory", 3)).reason == RejectReason.NOT_A_PARTICIPANT
    assert (await session_manager.submit_move(sid, "alice", 9)).reason == RejectReason.INVALID_MOVE
    assert (await session_manager.submit_move(sid, "alice", "rock")).reason == RejectReason.INVALID_MOVE
    assert (await session_manager.submit_move("missing", "alice", 3)).reason == RejectReason.UNKNOWN_SESSION


@pytest.mark.asyncio
async def test_gravity_example_vertical_win_for_b(session_manager, wallet):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.GRAVITY, stake=25)
    moves = [
        ("alice", 0), ("bob", 3),
        ("alice", 0), ("bob", 3),
        ("alice", 0), ("bob", 3),
        ("alice", 1), ("bob", 3),
    ]
    results = await _play(session_manager, session.session_id, moves)

    final = results[-1]
    assert final.outcome == MoveOutcome.GAME_OVER
    assert final.result.winner_id == "bob"
    assert wallet.transfers == [("alice", "bob", COMMUNITY, 25)]


@pytest.mark.asyncio
async def test_gravity_column_full(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.GRAVITY)
    sid = session.session_id
    for i in range(6):
        player = PLAYERS[i % 2]
        assert (await session_manager.submit_move(sid, player, {"column": 0})).outcome == MoveOutcome.ACCEPTED

    rejected = await session_manager.submit_move(sid, "alice", {"column": 0})
    assert rejected.reason == RejectReason.COLUMN_FULL
    assert session_manager.get(sid).turn == "alice"


@pytest.mark.asyncio
async def test_chooser_best_of_three_single_settlement(session_manager, wallet, registry):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.CHOOSER, stake=15)
    sid = session.session_id
    assert session.turn is None

    for _ in range(2):
        first, second = await _play_chooser_round(session_manager, sid, "rock", "scissors")
        assert first.outcome == MoveOutcome.ACCEPTED
        assert second.outcome == MoveOutcome.ACCEPTED

    assert wallet.transfers == []
    _, final = await _play_chooser_round(session_manager, sid, "rock", "scissors")

    assert final.outcome == MoveOutcome.GAME_OVER
    assert final.result.winner_id == "alice"
    assert final.result.rounds == 3
    assert final.board.score_a == 3
    assert wallet.transfers == [("bob", "alice", COMMUNITY, 15)]
    assert (await registry.get_counts(COMMUNITY))[GameKind.CHOOSER] == 1


@pytest.mark.asyncio
async def test_chooser_choice_hidden_until_round_resolves(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.CHOOSER)
    sid = session.session_id

    first = await session_manager.submit_move(sid, "bob", Choice.PAPER)
    assert first.board.submitted == [Mark.B]
    assert "choices" not in first.board.model_dump()

    again = await session_manager.submit_move(sid, "bob", "rock")
    assert again.reason == RejectReason.CHOICE_ALREADY_SUBMITTED

    resolved = await session_manager.submit_move(sid, "alice", "paper")
    assert resolved.board.last_round.choice_b == Choice.PAPER
    assert resolved.board.score_a == resolved.board.score_b == 0
    assert resolved.board.submitted == []


@pytest.mark.asyncio
async def test_chooser_target_score_is_capped(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.CHOOSER, target_score=50)
    assert session.board.target_score == 10

    short = session_manager.start(COMMUNITY, PLAYERS, GameKind.CHOOSER, target_score=1)
    _, final = await _play_chooser_round(session_manager, short.session_id, "paper", "scissors")
    assert final.result.winner_id == "bob"


@pytest.mark.asyncio
async def test_relay_wrong_answer_keeps_round_open(session_manager, wallet):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.RELAY, stake=5)
    sid = session.session_id
    puzzle = session.board.puzzle
    wrong = (puzzle.correct_index + 1) % 4

    before = session.board.model_copy(deep=True)

    rejected = await session_manager.submit_move(sid, "alice", [wrong, 1])
    assert rejected.reason == RejectReason.WRONG_ANSWER
    assert rejected.board is None
    assert session.board == before

    for pull in range(1, 4):
        result = await session_manager.submit_move(sid, "bob", _relay_answer(session))
        if pull < 3:
            assert result.outcome == MoveOutcome.ACCEPTED
            assert result.board.rope == -pull
            assert result.board.round_number == pull + 1
            assert "correct_index" not in result.board.model_dump()["puzzle"]

    assert result.outcome == MoveOutcome.GAME_OVER
    assert result.result.winner_id == "bob"
    assert wallet.transfers == [("alice", "bob", COMMUNITY, 5)]


@pytest.mark.asyncio
async def test_draw_increments_counter_without_transfer(session_manager, wallet, registry):
    completed = []
    session_manager.add_listener(completed.append)

    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    results = await _play(session_manager, session.session_id, ALIGNMENT_DRAW)

    final = results[-1]
    assert final.outcome == MoveOutcome.GAME_OVER
    assert final.result.is_draw
    assert final.result.winner_id is None
    assert final.result.settlement == SettlementStatus.NOT_REQUIRED
    assert wallet.transfers == []
    assert (await registry.get_counts(COMMUNITY))[GameKind.ALIGNMENT] == 1
    assert len(completed) == 1 and completed[0].is_draw


@pytest.mark.asyncio
async def test_settlement_failure_keeps_result(session_manager_factory, registry):
    manager = session_manager_factory(wallet_override=FailingWallet())
    session = manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    results = await _play(manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    result = results[-1].result
    assert result.winner_id == "alice"
    assert result.settlement == SettlementStatus.FAILED
    assert "unavailable" in result.settlement_error
    assert manager.get(session.session_id).status == SessionStatus.FINISHED
    assert (await registry.get_counts(COMMUNITY))[GameKind.ALIGNMENT] == 1


@pytest.mark.asyncio
async def test_zero_stake_win_records_stats_without_transfer(session_manager, wallet, registry):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)
    results = await _play(session_manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    assert results[-1].result.settlement == SettlementStatus.NOT_REQUIRED
    assert wallet.transfers == []

    alice = {r.game_kind: r for r in await registry.get_player_stats(COMMUNITY, "alice")}
    bob = {r.game_kind: r for r in await registry.get_player_stats(COMMUNITY, "bob")}
    assert alice[GameKind.ALIGNMENT].wins == 1
    assert bob[GameKind.ALIGNMENT].losses == 1


@pytest.mark.asyncio
async def test_inactivity_timeout_cancels_without_settlement(session_manager_factory, wallet, registry, tmp_path):
    config = ArcadeConfig(board_timeout=0.05, log_dir=str(tmp_path / "logs"))
    manager = session_manager_factory(config=config)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.GRAVITY, stake=10)
    events = manager.subscribe(session.session_id)

    await asyncio.sleep(0.2)

    assert session.status == SessionStatus.CANCELLED
    assert session.result is None
    assert (await events.get()).event == SessionEventType.CANCELLED
    late = await manager.submit_move(session.session_id, "alice", 3)
    assert late.reason == RejectReason.SESSION_ALREADY_FINISHED
    assert wallet.transfers == []
    assert (await registry.get_counts(COMMUNITY))[GameKind.GRAVITY] == 0


@pytest.mark.asyncio
async def test_accepted_move_restarts_timer(session_manager_factory, tmp_path):
    config = ArcadeConfig(board_timeout=0.3, log_dir=str(tmp_path / "logs"))
    manager = session_manager_factory(config=config)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)

    await asyncio.sleep(0.2)
    await manager.submit_move(session.session_id, "alice", [1, 1])
    await asyncio.sleep(0.2)

    assert session.is_active
    await manager.close()
    assert session.status == SessionStatus.CANCELLED


@pytest.mark.asyncio
async def test_explicit_cancel(session_manager, registry):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.RELAY)

    assert await session_manager.cancel(session.session_id)
    assert not await session_manager.cancel(session.session_id)
    assert not await session_manager.cancel("missing")
    assert (await registry.get_counts(COMMUNITY))[GameKind.RELAY] == 0


@pytest.mark.asyncio
async def test_subscribers_receive_board_updates_and_game_over(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)
    queue = session_manager.subscribe(session.session_id)

    await _play(session_manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    events = [queue.get_nowait() for _ in range(queue.qsize())]
    assert [e.event for e in events] == [SessionEventType.BOARD_UPDATED] * 4 + [SessionEventType.GAME_OVER]
    assert events[-1].result.winner_id == "alice"
    # Each event carries its own board snapshot
    assert events[0].board.cells[0][0] == Mark.A
    assert events[0].board.cells[1][1] == Mark.EMPTY


@pytest.mark.asyncio
async def test_async_listener_gets_one_match_completed(session_manager):
    completed = []

    async def listener(event):
        completed.append(event)

    session_manager.add_listener(listener)
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    await _play(session_manager, session.session_id, ALIGNMENT_WIN_FOR_A)
    await session_manager.submit_move(session.session_id, "bob", [2, 2])

    assert len(completed) == 1
    assert completed[0].winner_id == "alice"
    assert completed[0].stake == 10
    assert completed[0].session_id == session.session_id


@pytest.mark.asyncio
async def test_concurrent_winning_moves_settle_once(session_manager, wallet):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.RELAY, stake=10)
    sid = session.session_id

    for _ in range(2):
        await session_manager.submit_move(sid, "alice", _relay_answer(session))

    answer = _relay_answer(session)
    results = await asyncio.gather(*[
        session_manager.submit_move(sid, player, answer) for player in ("alice", "bob", "alice")
    ])

    outcomes = [r.outcome for r in results]
    assert outcomes[0] == MoveOutcome.GAME_OVER
    assert results[1].reason == RejectReason.SESSION_ALREADY_FINISHED
    assert results[2].reason == RejectReason.SESSION_ALREADY_FINISHED
    assert wallet.transfers == [("bob", "alice", COMMUNITY, 10)]


@pytest.mark.asyncio
async def test_find_by_composite_key(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.CHOOSER)
    key = session.metadata["composite_key"]

    assert key.startswith("alice-bob-")
    assert session_manager.find(key) is session
    assert session_manager.find("nobody-none-0") is None


@pytest.mark.asyncio
async def test_match_log_records_lifecycle(session_manager, match_logger):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    await session_manager.submit_move(session.session_id, "bob", [0, 0])
    await _play(session_manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    events = match_logger.load_session_log(session.session_id)
    names = [e["event"] for e in events]
    assert names[0] == "session_started"
    assert names[-1] == "session_finished"
    assert names.count("move") == 6
    assert events[1]["outcome"] == "rejected"
    assert events[1]["reason"] == "not_your_turn"
    assert events[-1]["result"]["winner_id"] == "alice"
    assert events[-1]["result"]["settlement"] == "settled"

    assert match_logger.load_session_log("missing") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(40))
async def test_simultaneous_correct_answers_score_one_round(session_manager_factory, seed):
    manager = session_manager_factory(seed=seed)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.RELAY)
    sid = session.session_id
    answer = _relay_answer(session)

    first, second = await asyncio.gather(
        manager.submit_move(sid, "alice", answer),
        manager.submit_move(sid, "bob", answer),
    )

    assert first.outcome == MoveOutcome.ACCEPTED
    assert second.reason == RejectReason.STALE_ROUND
    assert session.board.rope == 1
    assert session.round_number == session.board.round_number == 2
    await manager.close()


@pytest.mark.asyncio
async def test_registry_failure_still_finishes_the_match(session_manager_factory, wallet, match_logger):
    manager = session_manager_factory(registry_override=GameRegistry(store=FullDiskStore()))
    completed = []
    manager.add_listener(completed.append)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT, stake=10)
    queue = manager.subscribe(session.session_id)

    results = await _play(manager, session.session_id, ALIGNMENT_WIN_FOR_A)

    final = results[-1]
    assert final.outcome == MoveOutcome.GAME_OVER
    assert final.result.winner_id == "alice"
    assert wallet.transfers == [("bob", "alice", COMMUNITY, 10)]
    assert [e.winner_id for e in completed] == ["alice"]

    events = [queue.get_nowait() for _ in range(queue.qsize())]
    assert events[-1].event == SessionEventType.GAME_OVER
    assert match_logger.load_session_log(session.session_id)[-1]["event"] == "session_finished"


@pytest.mark.asyncio
async def test_move_queued_before_expiry_rearms_the_timer(session_manager_factory, tmp_path):
    config = ArcadeConfig(board_timeout=0.05, log_dir=str(tmp_path / "logs"))
    manager = session_manager_factory(config=config)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)

    # Hold the session lock so the move and the expiry queue up behind it
    async with manager._locks[session.session_id]:
        move = asyncio.create_task(manager.submit_move(session.session_id, "alice", [1, 1]))
        await asyncio.sleep(0.1)

    result = await move
    for _ in range(3):
        await asyncio.sleep(0)

    assert result.outcome == MoveOutcome.ACCEPTED
    assert session.is_active

    await asyncio.sleep(0.15)
    assert session.status == SessionStatus.CANCELLED


@pytest.mark.asyncio
async def test_move_queued_after_expiry_is_rejected(session_manager_factory, tmp_path):
    config = ArcadeConfig(board_timeout=0.05, log_dir=str(tmp_path / "logs"))
    manager = session_manager_factory(config=config)
    session = manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)

    async with manager._locks[session.session_id]:
        await asyncio.sleep(0.1)
        move = asyncio.create_task(manager.submit_move(session.session_id, "alice", [1, 1]))
        await asyncio.sleep(0)

    result = await move

    assert result.reason == RejectReason.SESSION_ALREADY_FINISHED
    assert session.status == SessionStatus.CANCELLED
    assert session.board.cells[1][1] == Mark.EMPTY


@pytest.mark.asyncio
async def test_unsubscribed_queue_gets_no_more_events(session_manager):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)
    kept = session_manager.subscribe(session.session_id)
    dropped = session_manager.subscribe(session.session_id)

    session_manager.unsubscribe(session.session_id, dropped)
    session_manager.unsubscribe(session.session_id, dropped)
    await session_manager.submit_move(session.session_id, "alice", [0, 0])

    assert kept.qsize() == 1
    assert dropped.empty()
    await session_manager.close()


@pytest.mark.asyncio
async def test_unserializable_move_is_rejected_not_raised(session_manager, match_logger):
    session = session_manager.start(COMMUNITY, PLAYERS, GameKind.ALIGNMENT)

    result = await session_manager.submit_move(session.session_id, "alice", object())

    assert result.reason == RejectReason.INVALID_MOVE
    assert [e["event"] for e in match_logger.load_session_log(session.session_id)] == ["session_started"]
    assert (await session_manager.submit_move(session.session_id, "alice", [0, 0])).outcome == MoveOutcome.ACCEPTED
    await session_manager.close()
