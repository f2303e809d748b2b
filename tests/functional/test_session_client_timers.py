import pytest

from learnit.config import AppConfig
from learnit.fsm import SessionAction
from learnit.quiz.application.session_client import LiveSessionClient
from learnit.quiz.domain.models import GameStatus

HOST = "host-1"


@pytest.fixture
def game(sessions, capitals_deck):
    """A started game with two players."""
    sid = sessions.create_session(capitals_deck, HOST)
    sessions.join_session(sid, "ann", "Ann")
    sessions.join_session(sid, "bob", "Bob")
    sessions.start_game(sid, HOST)
    return sid


@pytest.fixture
def host_client(sessions, game, scheduler):
    client = LiveSessionClient(sessions, game, HOST, scheduler=scheduler, auto_progress=True)
    client.open()
    yield client
    client.close()


def player(sessions, sid, uid, scheduler) -> LiveSessionClient:
    return LiveSessionClient(sessions, sid, uid, scheduler=scheduler, auto_progress=True).open()


def test_client_tracks_snapshots(sessions, game, scheduler):
    ann = player(sessions, game, "ann", scheduler)

    assert ann.session.status == GameStatus.PLAYING
    assert ann.current_question().question == "Capital of France?"
    assert ann.is_host is False

    ann.submit("Paris")

    assert ann.me().has_submitted is True
    assert [p.name for p in ann.mini_leaderboard()] == ["Ann", "Bob"]
    ann.close()


def test_no_timer_until_everyone_answered(sessions, game, host_client, scheduler):
    sessions.submit_answer(game, "ann", "Paris")
    assert scheduler.pending == []


def test_auto_reveal_then_auto_advance(sessions, game, host_client, scheduler):
    sessions.submit_answer(game, "ann", "Paris")
    sessions.submit_answer(game, "bob", "Rome")

    assert host_client.pending_actions == {SessionAction.REVEAL}
    assert scheduler.pending[0].delay_s == AppConfig.AUTO_REVEAL_DELAY_S

    scheduler.fire_next()

    session = sessions.require_session(game)
    assert session.show_answer is True
    assert host_client.pending_actions == {SessionAction.ADVANCE}
    assert scheduler.pending[0].delay_s == AppConfig.AUTO_ADVANCE_DELAY_S

    scheduler.fire_all()

    session = sessions.require_session(game)
    assert session.current_question_index == 1
    assert session.show_answer is False
    assert host_client.pending_actions == set()


def test_manual_advance_cancels_pending_timer(sessions, game, host_client, scheduler):
    sessions.submit_answer(game, "ann", "Paris")
    sessions.submit_answer(game, "bob", "Paris")
    scheduler.fire_all()  # reveal, then advance
    assert sessions.require_session(game).current_question_index == 1

    sessions.submit_answer(game, "ann", "Rome")
    sessions.submit_answer(game, "bob", "Rome")
    reveal_timer = scheduler.pending[0]

    host_client.reveal()
    advance_timer = scheduler.pending[-1]
    host_client.advance()

    assert reveal_timer.cancelled is True
    assert advance_timer.cancelled is True
    assert sessions.require_session(game).current_question_index == 2


def test_manual_reveal_cancels_reveal_timer(sessions, game, host_client, scheduler):
    sessions.submit_answer(game, "ann", "Paris")
    sessions.submit_answer(game, "bob", "Paris")
    reveal_timer = scheduler.pending[0]

    sessions.reveal_answer(game, HOST)
    assert reveal_timer.cancelled is True

    # A timer that was already running when it got cancelled does nothing
    reveal_timer.fn()
    assert sessions.require_session(game).show_answer is True
    assert host_client.pending_actions == {SessionAction.ADVANCE}


def test_game_runs_to_the_end_on_timers(sessions, game, host_client, scheduler):
    for answers in (("Paris", "Rome"), ("Rome", "Rome"), ("mitosis, meiosis", "x")):
        sessions.submit_answer(game, "ann", answers[0])
        sessions.submit_answer(game, "bob", answers[1])
        scheduler.fire_all()

    session = sessions.require_session(game)
    assert session.status == GameStatus.FINISHED
    assert session.players["ann"].score == 300
    assert session.players["bob"].score == 100
    assert host_client.pending_actions == set()


def test_players_never_schedule(sessions, game, scheduler):
    ann = player(sessions, game, "ann", scheduler)
    bob = player(sessions, game, "bob", scheduler)

    ann.submit("Paris")
    bob.submit("Paris")

    assert scheduler.timers == []
    ann.close()
    bob.close()


def test_auto_progress_can_be_disabled(sessions, game, scheduler):
    client = LiveSessionClient(sessions, game, HOST, scheduler=scheduler, auto_progress=False)
    client.open()

    sessions.submit_answer(game, "ann", "Paris")
    sessions.submit_answer(game, "bob", "Paris")

    assert scheduler.timers == []
    client.close()


def test_close_cancels_timers(sessions, game, host_client, scheduler):
    sessions.submit_answer(game, "ann", "Paris")
    sessions.submit_answer(game, "bob", "Paris")
    timer = scheduler.pending[0]

    host_client.close()

    assert timer.cancelled is True


def test_end_marks_clients_ended(sessions, game, host_client, scheduler):
    ann = player(sessions, game, "ann", scheduler)

    host_client.end()

    assert ann.ended is True
    assert ann.session is None
    assert ann.missing is False
    ann.close()


def test_unknown_session_is_missing_not_ended(sessions, scheduler):
    client = player(sessions, "no-such-game", "ann", scheduler)

    assert client.missing is True
    assert client.ended is False
    assert client.session is None
    client.close()
