import random
from datetime import datetime, timedelta, timezone

from solo_api.controller import Phase, RoundOutcome
from solo_api.sessions import SESSION_CLOSED, SessionStore
from solo_api.themes import status_message


def test_subscriber_gets_settled_state(scheduler):
    store = SessionStore(scheduler=scheduler, rng=random.Random(0))
    session = store.create()
    queue = session.subscribe()

    session.controller.board = ["X", "X", None, "O", "O", None, None, None, None]
    session.play(2)

    human = queue.get_nowait()
    win = queue.get_nowait()
    assert (human["event"], win["event"]) == ("human", "win")
    # Both messages carry the state after the round was settled.
    assert human["state"]["phase"] == Phase.ROUND_OVER.value
    assert win["state"]["winning_line"] == [0, 1, 2]
    assert queue.empty()


def test_computer_move_is_pushed_when_timer_fires(scheduler):
    store = SessionStore(scheduler=scheduler, rng=random.Random(0))
    session = store.create()
    queue = session.subscribe()

    session.set_mark("O")
    assert queue.empty()
    scheduler.run_pending()
    message = queue.get_nowait()
    assert message["event"] == "ai"
    assert message["state"]["board"].count("X") == 1


def test_unsubscribed_queue_gets_nothing(scheduler):
    session = SessionStore(scheduler=scheduler).create()
    queue = session.subscribe()
    session.unsubscribe(queue)
    session.play(0)
    assert queue.empty()


def test_discard_closes_session(scheduler):
    store = SessionStore(scheduler=scheduler)
    session = store.create()
    session.play(4)
    assert len(store) == 1

    store.discard(session.id)
    assert len(store) == 0
    assert store.get(session.id) is None
    assert scheduler.pending == []


def test_status_message_per_theme():
    assert status_message("disco", RoundOutcome.DRAW, None, "X") == "Same groove, same score. Draw."
    assert status_message("western", RoundOutcome.HUMAN_WIN, None, "O") == "You outdrew the outlaw. Victory."
    assert status_message("cosmic", RoundOutcome.IN_PROGRESS, "O", "O") == "Your move (O)."
    assert status_message("disco", RoundOutcome.IN_PROGRESS, "X", "O") == "The DJ is cueing up a move…"
    assert status_message("unknown", RoundOutcome.COMPUTER_WIN, None, "X") == "Astro AI controls this sector."


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_expired_sessions_are_evicted(scheduler):
    clock = FakeClock()
    store = SessionStore(scheduler=scheduler, ttl=timedelta(minutes=5), clock=clock)
    sessions = [store.create() for _ in range(50)]
    for session in sessions:
        session.play(4)
    assert len(store) == 50
    assert len(scheduler.pending) == 50

    clock.now += timedelta(minutes=4)
    fresh = store.create()
    assert len(store) == 51

    clock.now += timedelta(minutes=1)
    assert store.get(sessions[0].id) is None
    assert len(store) == 1
    assert store.get(fresh.id) is fresh
    assert all(session.closed for session in sessions)
    assert len(scheduler.pending) == 0


def test_close_tells_subscribers(scheduler):
    store = SessionStore(scheduler=scheduler)
    session = store.create()
    queue = session.subscribe()

    store.discard(session.id)
    assert session.closed
    assert queue.get_nowait() is SESSION_CLOSED
    assert session.subscribers == set()
