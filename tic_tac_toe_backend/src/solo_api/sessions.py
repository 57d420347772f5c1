import asyncio
import logging
import random
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from . import config
from .controller import MoveKind, RoundController, Scheduler, asyncio_scheduler
from .models import GameStateResponse
from .themes import DEFAULT_THEME, status_message

logger = logging.getLogger(__name__)

# Put on subscriber queues when the session goes away.
SESSION_CLOSED = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameSession:
    """One browser's game: controller, score, presentation preferences and live subscribers.

    Controller notifications are buffered and pushed once the transition that
    produced them is complete, so every pushed message carries the settled state.
    """

    def __init__(
        self,
        session_id: str,
        scheduler: Optional[Scheduler] = None,
        delay: float = config.COMPUTER_MOVE_DELAY,
        rng: Optional[random.Random] = None,
        created_at: Optional[datetime] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.id = session_id
        self.created_at = created_at or utc_now()
        self.expires_at = self.created_at + (ttl or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
        self.closed = False
        self.theme = DEFAULT_THEME
        self.sound_on = True
        self.subscribers: Set[asyncio.Queue] = set()
        self._events: List[MoveKind] = []
        self._scheduler = scheduler or asyncio_scheduler
        self.controller = RoundController(
            rng=rng,
            scheduler=self._schedule,
            delay=delay,
            listener=self._events.append,
        )

    # PUBLIC_INTERFACE
    def play(self, index: int) -> bool:
        accepted = self.controller.play_human_move(index)
        self.flush()
        return accepted

    # PUBLIC_INTERFACE
    def restart(self) -> None:
        self.controller.restart_round()
        self.flush()

    # PUBLIC_INTERFACE
    def set_mark(self, mark: str) -> bool:
        accepted = self.controller.set_human_mark(mark)
        self.flush()
        return accepted

    # PUBLIC_INTERFACE
    def update_preferences(self, theme: Optional[str] = None, sound_on: Optional[bool] = None) -> None:
        if theme is not None:
            self.theme = theme
        if sound_on is not None:
            self.sound_on = sound_on

    # PUBLIC_INTERFACE
    def state(self, accepted: bool = True) -> GameStateResponse:
        snap = self.controller.snapshot()
        ctrl = self.controller
        return GameStateResponse(
            **snap,
            status=status_message(self.theme, ctrl.outcome, ctrl.mover, ctrl.human_mark),
            theme=self.theme,
            sound_on=self.sound_on,
            accepted=accepted,
        )

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self.subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self.subscribers.discard(queue)

    def flush(self) -> None:
        """Push buffered notifications to every subscriber without waiting on them."""
        events = list(self._events)
        self._events.clear()
        if not events or not self.subscribers:
            return
        payload = self.state().model_dump()
        for kind in events:
            message = {"event": kind.value if self.sound_on else "state", "state": payload}
            for queue in list(self.subscribers):
                queue.put_nowait(message)

    def expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def close(self) -> None:
        """Cancel the pending computer move and tell every subscriber the session is gone."""
        self.closed = True
        self.controller.close()
        for queue in list(self.subscribers):
            queue.put_nowait(SESSION_CLOSED)
        self.subscribers.clear()

    def _schedule(self, delay: float, callback: Callable[[], None]) -> Any:
        def fire():
            callback()
            self.flush()
        return self._scheduler(delay, fire)


class SessionStore:
    """In-memory registry of game sessions. Nothing is persisted.

    A session lives as long as its token. Expired sessions are dropped the
    next time the store is used.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        delay: float = config.COMPUTER_MOVE_DELAY,
        rng: Optional[random.Random] = None,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scheduler = scheduler
        self.delay = delay
        self.rng = rng
        self.ttl = ttl or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.clock = clock
        self._sessions: Dict[str, GameSession] = {}

    def create(self) -> GameSession:
        self.evict_expired()
        session_id = secrets.token_hex(16)
        session = GameSession(
            session_id,
            scheduler=self.scheduler,
            delay=self.delay,
            rng=self.rng,
            created_at=self.clock(),
            ttl=self.ttl,
        )
        self._sessions[session_id] = session
        logger.info("Session %s created", session_id)
        return session

    def get(self, session_id: str) -> Optional[GameSession]:
        self.evict_expired()
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
            logger.info("Session %s closed", session_id)

    def evict_expired(self) -> int:
        now = self.clock()
        expired = [sid for sid, session in self._sessions.items() if session.expired(now)]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            logger.info("Evicted %d expired sessions", len(expired))
        return len(expired)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.discard(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
