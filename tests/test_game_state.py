from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from ratingparty.models.round import Round
from ratingparty.services.game_state import (
    AlreadyAnsweredError,
    DuplicateOrLateJoinError,
    GameSession,
    InvalidChoiceError,
    InvalidGuessError,
    InvalidNameError,
    Phase,
    RoundClosedError,
    ScoringNotPendingError,
    UnknownPlayerError,
    create_session,
)


def _rounds(*active_players: int, rating: float = 7.5, points: int = 10) -> list[Round]:
    return [
        Round(number=i, title=f"Film {i}", rating=rating, points=points, active_player=active)
        for i, active in enumerate(active_players)
    ]


def _started(names=("A", "B", "C"), rounds=None, **kwargs) -> GameSession:
    rounds = rounds or _rounds(0, 2, 1)
    session = create_session(rounds, len(names), game_name="test", **kwargs)
    for name in names:
        session.join(name)
    return session


def _play_round(session: GameSession, guesses: dict) -> None:
    for name, (guess, choice) in guesses.items():
        session.submit_guess(name, guess, choice)


# -----------------------------
# Roster
# -----------------------------
def test_first_joiner_is_active_and_game_waits_for_roster():
    session = create_session(_rounds(0, 1), 3)

    first = session.join("A")
    second = session.join("B")

    assert first.active is True
    assert second.active is False
    assert session.phase == Phase.NOT_STARTED
    assert session.round_index == -1
    assert session.started is False


def test_full_roster_opens_first_round():
    session = _started()

    assert session.started is True
    assert session.phase == Phase.ROUND_OPEN
    assert session.round_index == 0
    assert session.current_round.title == "Film 0"
    assert [p.active for p in session.players] == [True, False, False]


def test_duplicate_join_rejected():
    session = create_session(_rounds(0), 3)
    session.join("A")

    with pytest.raises(DuplicateOrLateJoinError):
        session.join("A")
    assert len(session.players) == 1


def test_join_after_roster_full_rejected():
    session = _started()

    with pytest.raises(DuplicateOrLateJoinError):
        session.join("D")
    assert [p.name for p in session.players] == ["A", "B", "C"]


def test_blank_name_rejected():
    session = create_session(_rounds(0), 2)

    with pytest.raises(InvalidNameError):
        session.join("   ")


def test_find_and_get_player():
    session = _started()

    assert session.find_player("B").name == "B"
    assert session.find_player("Z") is None
    with pytest.raises(UnknownPlayerError):
        session.get_player("Z")


# -----------------------------
# Réponses & notation
# -----------------------------
def test_round_scored_when_last_player_answers():
    session = _started()

    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    assert session.phase == Phase.ROUND_SCORED
    assert [p.score for p in session.players] == [10, 10, 0]
    assert len(session.history) == 1
    assert session.history[0].outcome == "higher"


def test_round_not_scored_until_everyone_answered():
    session = _started()

    _play_round(session, {"A": (7.0, ""), "B": (0, "higher")})

    assert session.phase == Phase.ROUND_OPEN
    assert session.pending_answers == 2
    assert [p.score for p in session.players] == [0, 0, 0]


def test_second_submit_is_rejected_and_changes_nothing():
    session = _started()
    session.submit_guess("B", 0, "higher")

    with pytest.raises(AlreadyAnsweredError):
        session.submit_guess("B", 0, "lower")

    assert session.pending_answers == 1
    assert session.find_player("B").choice == "higher"


def test_unknown_player_submit():
    session = _started()

    with pytest.raises(UnknownPlayerError):
        session.submit_guess("Z", 5.0, "higher")
    assert session.pending_answers == 0


def test_invalid_choice_rejected():
    session = _started()

    with pytest.raises(InvalidChoiceError):
        session.submit_guess("B", 5.0, "sideways")
    assert session.find_player("B").answered is False


@pytest.mark.parametrize("guess", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_guess_rejected(guess):
    session = _started()

    with pytest.raises(InvalidGuessError):
        session.submit_guess("A", guess, "")
    assert session.find_player("A").answered is False
    assert session.pending_answers == 0


def test_nan_guess_cannot_win_final_round():
    rounds = [Round(number=0, title="Final", rating=8.0, points=3, active_player=0, final_round=True)]
    session = _started(names=("A", "B"), rounds=rounds)

    with pytest.raises(InvalidGuessError):
        session.submit_guess("A", float("nan"), "")
    _play_round(session, {"A": (6.0, ""), "B": (8.0, "")})

    assert session.history[-1].awards["B"] == 3 + 5


def test_submit_before_start_rejected():
    session = create_session(_rounds(0), 2)
    session.join("A")

    with pytest.raises(RoundClosedError):
        session.submit_guess("A", 5.0, "")


def test_submit_after_scoring_rejected():
    session = _started()
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    with pytest.raises(AlreadyAnsweredError):
        session.submit_guess("A", 1.0, "")
    assert len(session.history) == 1


def test_exact_outcome_in_session():
    session = _started()

    _play_round(session, {"A": (7.5, ""), "B": (0, "exact"), "C": (0, "higher")})

    assert [p.score for p in session.players] == [10, 15, 0]
    assert session.history[0].bonus_to == "B"


def test_exact_tolerance_option():
    session = _started(exact_tolerance=0.1)

    _play_round(session, {"A": (7.45, ""), "B": (0, "exact"), "C": (0, "higher")})

    assert session.history[0].outcome == "exact"


# -----------------------------
# Rotation & avancement
# -----------------------------
def test_active_player_follows_next_round_configuration():
    session = _started(rounds=_rounds(0, 2, 1))

    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    assert [p.active for p in session.players] == [False, False, True]

    session.advance_round()
    _play_round(session, {"A": (0, "lower"), "B": (0, "higher"), "C": (8.0, "")})

    assert [p.active for p in session.players] == [False, True, False]


def test_exactly_one_active_player_after_each_round():
    session = _started(rounds=_rounds(0, 1, 1, 0))
    for _ in range(3):
        active = next(p.name for p in session.players if p.active)
        _play_round(
            session,
            {p.name: (7.0, "") if p.name == active else (0, "higher") for p in list(session.players)},
        )
        assert sum(p.active for p in session.players) == 1
        session.advance_round()


def test_advance_is_noop_while_round_open():
    session = _started()

    assert session.advance_round() is False
    assert session.round_index == 0
    assert session.phase == Phase.ROUND_OPEN


def test_advance_is_noop_before_start():
    session = create_session(_rounds(0, 1), 2)
    session.join("A")

    assert session.advance_round() is False
    assert session.round_index == -1


def test_advance_resets_round_inputs():
    session = _started()
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    assert session.advance_round() is True

    assert session.round_index == 1
    assert session.current_round.title == "Film 1"
    assert session.pending_answers == 0
    assert session.phase == Phase.ROUND_OPEN
    for player in session.players:
        assert (player.guess, player.choice, player.answered) == (0.0, "", False)
    assert [p.score for p in session.players] == [10, 10, 0]


def test_advance_never_passes_last_round():
    session = _started(names=("A", "B"), rounds=_rounds(0))
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher")})

    assert session.advance_round() is False
    assert session.phase == Phase.GAME_COMPLETE
    assert session.round_index == 0
    assert session.advance_round() is False
    assert session.round_index == 0


def test_final_round_scores_closest_guess():
    rounds = [
        Round(number=0, title="Warmup", rating=5.0, points=1, active_player=0),
        Round(number=1, title="Final", rating=8.0, points=3, active_player=1, final_round=True),
    ]
    session = _started(names=("A", "B"), rounds=rounds)
    _play_round(session, {"A": (4.0, ""), "B": (0, "higher")})
    session.advance_round()

    _play_round(session, {"A": (7.9, ""), "B": (8.5, "")})

    assert session.history[-1].mode == "final"
    assert session.history[-1].awards == {"A": 3, "B": 0}


# -----------------------------
# Confirmation MJ
# -----------------------------
def test_confirm_scoring_waits_for_moderator():
    session = _started(require_confirmation=True)
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    assert session.phase == Phase.AWAITING_CONFIRMATION
    assert [p.score for p in session.players] == [0, 0, 0]
    assert session.advance_round() is False

    result = session.confirm_scoring()

    assert result.awards == {"A": 10, "B": 10, "C": 0}
    assert session.phase == Phase.ROUND_SCORED
    assert session.players[2].active is True
    with pytest.raises(ScoringNotPendingError):
        session.confirm_scoring()


def test_confirm_scoring_rejected_while_round_open():
    session = _started(require_confirmation=True)

    with pytest.raises(ScoringNotPendingError):
        session.confirm_scoring()


def test_session_built_directly_scores_without_confirmation():
    session = GameSession(catalog=tuple(_rounds(0, 1)), expected_player_count=2)
    session.join("A")
    session.join("B")

    _play_round(session, {"A": (7.0, ""), "B": (0, "higher")})

    assert session.require_confirmation is False
    assert session.phase == Phase.ROUND_SCORED
    assert callable(session.confirm_scoring)


def test_session_built_directly_with_confirmation():
    session = GameSession(catalog=tuple(_rounds(0, 1)), expected_player_count=2, require_confirmation=True)
    session.join("A")
    session.join("B")
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher")})

    assert session.phase == Phase.AWAITING_CONFIRMATION
    assert session.confirm_scoring().awards == {"A": 0, "B": 10}
    assert session.phase == Phase.ROUND_SCORED


# -----------------------------
# Mode solo
# -----------------------------
def test_solo_game_flow():
    rounds = [Round(number=0, title="Solo", rating=6.0, points=2), Round(number=1, title="Next", rating=3.0, points=1)]
    session = create_session(rounds, 1)
    player = session.join("Solo")

    assert player.active is False
    assert session.phase == Phase.ROUND_OPEN

    session.submit_guess("Solo", 5.2)

    assert session.phase == Phase.ROUND_SCORED
    assert player.score == 2
    assert session.history[0].bonus_to is None

    assert session.advance_round() is True
    session.submit_guess("Solo", 3.0)
    assert player.score == 2 + 1 + 5


# -----------------------------
# Lecture
# -----------------------------
def test_snapshot_shows_active_guess_and_hides_opponents_until_scored():
    session = _started()

    before = session.snapshot()
    assert before.players[0].guess is None

    session.submit_guess("A", 7.0, "")
    session.submit_guess("B", 6.0, "higher")

    open_view = session.snapshot()
    assert open_view.phase == "ROUND_OPEN"
    assert open_view.players[0].answered is True
    assert open_view.players[0].guess == 7.0
    assert open_view.players[1].answered is True
    assert open_view.players[1].guess is None
    assert open_view.players[1].choice is None

    _play_round(session, {"C": (0, "lower")})
    scored_view = session.snapshot()

    assert scored_view.players[0].guess == 7.0
    assert scored_view.players[1].choice == "higher"
    assert scored_view.last_result.awards["A"] == 10
    assert scored_view.total_rounds == 3


def test_snapshot_is_detached_copy():
    session = _started()
    view = session.snapshot()

    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    assert view.phase == "ROUND_OPEN"
    assert view.players[0].score == 0


def test_leaderboard_orders_by_score_then_join_order():
    session = _started()
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})

    board = session.leaderboard()

    assert [row["name"] for row in board] == ["A", "B", "C"]
    assert [row["score"] for row in board] == [10, 10, 0]


def test_session_requires_rounds():
    with pytest.raises(ValueError):
        GameSession(catalog=(), expected_player_count=2)


def test_session_rejects_active_index_outside_roster():
    with pytest.raises(ValueError, match="player index 5"):
        create_session(_rounds(0, 5), 2)


def test_solo_session_ignores_active_index():
    session = create_session(_rounds(0, 3), 1)

    assert session.solo is True


def test_rotation_failure_leaves_round_unscored():
    session = _started(names=("A", "B"), rounds=_rounds(0, 1))
    session.catalog = (session.catalog[0], Round(number=1, title="Broken", rating=1.0, points=10, active_player=5))
    session.submit_guess("A", 7.0, "")

    with pytest.raises(RuntimeError):
        session.submit_guess("B", 0, "higher")

    assert [p.score for p in session.players] == [0, 0]
    assert session.history == []
    assert [p.active for p in session.players] == [True, False]
    assert session.phase == Phase.ROUND_OPEN
    assert session.pending_answers == 1
    assert session.find_player("B").answered is False


# -----------------------------
# Concurrence
# -----------------------------
def test_concurrent_submits_score_round_once():
    names = [f"P{i}" for i in range(16)]
    session = _started(names=names, rounds=_rounds(0, 1))
    barrier = threading.Barrier(len(names))

    def submit(name):
        barrier.wait()
        if name == "P0":
            session.submit_guess(name, 7.0, "")
        else:
            session.submit_guess(name, 0, "higher")

    with ThreadPoolExecutor(max_workers=len(names)) as pool:
        list(pool.map(submit, names))

    assert session.pending_answers == len(names)
    assert len(session.history) == 1
    assert session.phase == Phase.ROUND_SCORED
    assert sum(p.score for p in session.players) == 10 * (len(names) - 1)
    assert [p.name for p in session.players if p.active] == ["P1"]


def test_concurrent_duplicate_submits_accept_one_each():
    names = ["A", "B", "C", "D"]
    session = _started(names=names, rounds=_rounds(0, 1), require_confirmation=True)
    barrier = threading.Barrier(len(names) * 2)
    accepted = []
    rejected = []

    def submit(name):
        barrier.wait()
        try:
            session.submit_guess(name, 7.0, "" if name == "A" else "higher")
            accepted.append(name)
        except AlreadyAnsweredError:
            rejected.append(name)

    with ThreadPoolExecutor(max_workers=len(names) * 2) as pool:
        list(pool.map(submit, names * 2))

    assert sorted(accepted) == names
    assert sorted(rejected) == names
    assert session.pending_answers == len(names)


def test_concurrent_advances_move_one_round():
    session = _started(rounds=_rounds(0, 1, 2, 0))
    _play_round(session, {"A": (7.0, ""), "B": (0, "higher"), "C": (0, "lower")})
    barrier = threading.Barrier(8)

    def advance(_):
        barrier.wait()
        return session.advance_round()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(advance, range(8)))

    assert results.count(True) == 1
    assert session.round_index == 1
