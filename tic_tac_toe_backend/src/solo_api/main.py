from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from contextlib import asynccontextmanager, suppress
from typing import Optional
from starlette.websockets import WebSocketState
from datetime import datetime, timedelta, timezone

from . import config
from .models import (
    TokenResponse,
    MoveRequest,
    MarkRequest,
    PreferencesRequest,
    PreferencesResponse,
    ThemesResponse,
    ThemeEntry,
    GameStateResponse,
)
from .sessions import SESSION_CLOSED, GameSession, SessionStore
from .themes import THEMES

import asyncio
import logging
import jwt

logger = logging.getLogger(__name__)

# In-memory sessions, one per browser. Scores die with the process.
store = SessionStore()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="session")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    yield
    store.close_all()


app = FastAPI(
    title="Solo Tic Tac Toe API",
    description="Backend for single-player Tic Tac Toe against an optimal computer opponent. "
    "Handles sessions, moves, scores, theme preferences and real-time WS updates.",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "session", "description": "Create or close a game session"},
        {"name": "game", "description": "Play rounds against the computer"},
        {"name": "preferences", "description": "Theme and sound preferences"},
        {"name": "ws", "description": "Websockets for real-time updates"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


##---- Utility Functions ----##
def get_store() -> SessionStore:
    return store


# PUBLIC_INTERFACE
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create JWT access token with optional expiry."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def resolve_session(token: str, sessions: SessionStore) -> GameSession:
    """Decode JWT and load the session. Raises HTTPException(401) on any failure."""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except jwt.ExpiredSignatureError:
        # The signature is still checked; only the expiry is skipped to find the session.
        stale = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM], options={"verify_exp": False})
        if stale.get("sub"):
            sessions.discard(stale["sub"])
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Could not validate credentials")
    session_id = payload.get("sub")
    session = sessions.get(session_id) if session_id else None
    if session is None:
        raise HTTPException(status_code=401, detail="Unknown session")
    return session


async def get_current_session(
    token: str = Depends(oauth2_scheme),
    sessions: SessionStore = Depends(get_store),
) -> GameSession:
    return resolve_session(token, sessions)


@app.get("/", tags=["health"])
def health_check():
    """Health check route for backend"""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.post("/session", response_model=TokenResponse, tags=["session"], summary="Start a session")
async def create_session(sessions: SessionStore = Depends(get_store)):
    """Create a new game session with an empty board and a zero score.

    Returns:
        TokenResponse: bearer JWT identifying the session.
    """
    session = sessions.create()
    token = create_access_token({"sub": session.id}, expires_delta=sessions.ttl)
    return TokenResponse(access_token=token, token_type="bearer")


# PUBLIC_INTERFACE
@app.delete("/session", status_code=204, tags=["session"], summary="Close the session")
async def close_session(
    session: GameSession = Depends(get_current_session),
    sessions: SessionStore = Depends(get_store),
):
    """Discard the session, its score and any pending computer move."""
    sessions.discard(session.id)


# PUBLIC_INTERFACE
@app.get("/state", response_model=GameStateResponse, tags=["game"], summary="Get current game state")
async def get_state(session: GameSession = Depends(get_current_session)):
    """Board, mover, outcome, winning line and score of the current round."""
    return session.state()


# PUBLIC_INTERFACE
@app.post("/move", response_model=GameStateResponse, tags=["game"], summary="Play the human's move")
async def play_move(request: MoveRequest, session: GameSession = Depends(get_current_session)):
    """Place the human's mark. The computer answers after a short delay.

    Moves on an occupied cell, out of turn or after the round is over are
    ignored: the unchanged state comes back with accepted=False.
    """
    accepted = session.play(request.index)
    return session.state(accepted=accepted)


# PUBLIC_INTERFACE
@app.post("/restart", response_model=GameStateResponse, tags=["game"], summary="Restart the round")
async def restart_round(session: GameSession = Depends(get_current_session)):
    """Start a fresh round. The score is kept."""
    session.restart()
    return session.state()


# PUBLIC_INTERFACE
@app.post("/mark", response_model=GameStateResponse, tags=["game"], summary="Choose the human's mark")
async def set_mark(request: MarkRequest, session: GameSession = Depends(get_current_session)):
    """Switch sides and start a fresh round. X always moves first.

    Choosing the mark the human already holds is ignored (accepted=False).
    """
    accepted = session.set_mark(request.mark)
    return session.state(accepted=accepted)


# PUBLIC_INTERFACE
@app.get("/themes", response_model=ThemesResponse, tags=["preferences"], summary="List themes")
async def list_themes():
    return ThemesResponse(themes=[ThemeEntry(**theme) for theme in THEMES])


# PUBLIC_INTERFACE
@app.get("/preferences", response_model=PreferencesResponse, tags=["preferences"], summary="Get preferences")
async def get_preferences(session: GameSession = Depends(get_current_session)):
    return PreferencesResponse(theme=session.theme, sound_on=session.sound_on)


# PUBLIC_INTERFACE
@app.put("/preferences", response_model=PreferencesResponse, tags=["preferences"], summary="Update preferences")
async def update_preferences(request: PreferencesRequest, session: GameSession = Depends(get_current_session)):
    """Change theme and/or sound. Fields left out keep their value."""
    session.update_preferences(theme=request.theme, sound_on=request.sound_on)
    return PreferencesResponse(theme=session.theme, sound_on=session.sound_on)


async def _push_updates(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        message = await queue.get()
        if message is SESSION_CLOSED:
            await websocket.close(code=1008, reason="Session closed")
            return
        await websocket.send_json(message)


# PUBLIC_INTERFACE
@app.websocket("/ws")
async def websocket_game_updates(
    websocket: WebSocket,
    token: str = Query(...),
    sessions: SessionStore = Depends(get_store),
):
    """
    WebSocket pushing game events for a session. Usage: connect to ws://host/ws?token=<jwt>.
    Each move and round result arrives as {"event": kind, "state": {...}}.
    Send 'ping' for a pong, or any other text to get the current state.
    The socket is closed with code 1008 once the session is discarded or expires.
    """
    try:
        session = resolve_session(token, sessions)
    except HTTPException as exc:
        await websocket.close(code=1008, reason=exc.detail)
        return
    await websocket.accept()
    queue = session.subscribe()
    pusher = asyncio.create_task(_push_updates(websocket, queue))
    try:
        while True:
            data = await websocket.receive_text()
            if session.closed or websocket.application_state != WebSocketState.CONNECTED:
                break
            if data == "ping":
                await websocket.send_text("pong")
            else:
                await websocket.send_json({"event": "state", "state": session.state().model_dump()})
    except WebSocketDisconnect:
        logger.debug("Session %s websocket disconnected", session.id)
    finally:
        pusher.cancel()
        with suppress(asyncio.CancelledError, WebSocketDisconnect):
            await pusher
        session.unsubscribe(queue)
        if (
            session.closed
            and websocket.application_state == WebSocketState.CONNECTED
            and websocket.client_state == WebSocketState.CONNECTED
        ):
            await websocket.close(code=1008, reason="Session closed")


# Misc: Docs route for websocket usage notes
@app.get("/websocket_info", tags=["ws"], summary="Get websocket usage instructions")
def websocket_info():
    """Instructions for real-time connection via websocket."""
    return {
        "usage":
            "Connect using WebSocket at ws://HOST/ws?token=<session token> to receive game events in real-time. "
            "Send 'ping' for a pong, or any text to get the latest state."
    }
