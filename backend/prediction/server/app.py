from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from http import HTTPStatus
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from prediction.logic.enums import CLIENT_ERROR_CODES, ErrorCode, GameMode, RoundStatus
from prediction.server.settings import ServerSettings
from prediction.server.types import JoinRequest
from prediction.session.game_session import GameSession
from prediction.settlement.bridge import BridgeExecutor
from prediction.settlement.stub import StubExecutor
from prediction.settlement.wallets import MockWalletPool
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

    from prediction.logic.round import RoundSnapshot
    from prediction.session.outcomes import JoinOutcome


_MAX_REQUEST_BODY_SIZE = 4096
_WALLET_MISSING_MESSAGE = "Please configure MAINNET_ETH_PRIVATE_KEY in the environment first"


def build_sessions(settings: ServerSettings) -> dict[GameMode, GameSession]:
    """Create one session per available mode. Real mode needs a bridge URL."""
    game_settings = settings.game_settings()
    sessions = {
        GameMode.DEMO: GameSession(
            game_settings,
            StubExecutor(delay_seconds=settings.demo_transfer_delay_seconds),
            round_prefix="demo_game",
        ),
    }
    if settings.bridge_url:
        sessions[GameMode.REAL] = GameSession(
            game_settings,
            BridgeExecutor(settings.bridge_url, timeout_seconds=settings.settlement_timeout_seconds),
            round_prefix="game",
        )
    return sessions


def _error(message: str, status_code: int = HTTPStatus.BAD_REQUEST, **extra: object) -> JSONResponse:
    return JSONResponse({"success": False, "error": message, **extra}, status_code=status_code)


def _resolve_mode(request: Request, requested: str | GameMode | None) -> GameMode:
    settings: ServerSettings = request.app.state.settings
    if requested is None or requested == "":
        return settings.default_mode
    return GameMode(requested)


def _game_payload(snapshot: RoundSnapshot | None) -> dict | None:
    return snapshot.model_dump(mode="json", by_alias=True) if snapshot is not None else None


def _outcome_status(outcome: JoinOutcome) -> int:
    if outcome.error_code in CLIENT_ERROR_CODES:
        return HTTPStatus.BAD_REQUEST
    return HTTPStatus.INTERNAL_SERVER_ERROR


async def join(request: Request) -> JSONResponse:
    sessions: dict[GameMode, GameSession] = request.app.state.sessions
    settings: ServerSettings = request.app.state.settings

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return _error("Request body too large", HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return _error("Invalid request body")

    try:
        join_request = JoinRequest.model_validate(body)
    except ValidationError as e:
        if any(err["loc"][:1] == ("guess",) for err in e.errors()):
            return _error(
                f"Guess must be a number between 1 and {settings.max_guess}",
                errorCode=ErrorCode.INVALID_GUESS.value,
            )
        return _error("Invalid request body")

    mode = join_request.mode or settings.default_mode
    session = sessions.get(mode)
    if session is None:
        return _error(f"{mode.value} mode is not configured")
    if not session.settings.is_valid_guess(join_request.guess):
        return _error(
            f"Guess must be a number between 1 and {session.settings.max_guess}",
            errorCode=ErrorCode.INVALID_GUESS.value,
        )

    if mode == GameMode.DEMO:
        player_address = request.app.state.wallet_pool.next_address()
    else:
        player_address = settings.wallet_address
        if player_address is None:
            return _error(_WALLET_MISSING_MESSAGE)

    logger.info("join requested", mode=mode, identity=player_address, guess=join_request.guess)
    outcome = await session.join(player_address, join_request.guess)
    if not outcome.success:
        return _error(
            outcome.message or "Failed to join game",
            _outcome_status(outcome),
            errorCode=outcome.error_code.value if outcome.error_code else None,
            txHash=outcome.tx_id,
            gameId=outcome.round_id,
            playerAddress=player_address,
        )

    return JSONResponse(
        {
            "success": True,
            "txHash": outcome.tx_id,
            "gameId": outcome.round_id,
            "playerAddress": player_address,
            "message": "Successfully joined the game!",
        },
    )


def _session_for_query(request: Request) -> GameSession | JSONResponse:
    try:
        mode = _resolve_mode(request, request.query_params.get("mode"))
    except ValueError:
        return _error("Unknown mode")
    session = request.app.state.sessions.get(mode)
    if session is None:
        return _error(f"{mode.value} mode is not configured")
    return session


async def status(request: Request) -> JSONResponse:
    session = _session_for_query(request)
    if isinstance(session, JSONResponse):
        return session
    return JSONResponse(
        {
            "success": True,
            "game": _game_payload(session.status()),
            "timeRemaining": session.time_remaining(),
            "canJoin": session.can_join(),
        },
    )


async def result(request: Request) -> JSONResponse:
    session = _session_for_query(request)
    if isinstance(session, JSONResponse):
        return session
    snapshot = session.status()
    if snapshot is None:
        return _error("No game found", HTTPStatus.NOT_FOUND)
    winner = snapshot.winner.model_dump(mode="json", by_alias=True) if snapshot.winner is not None else None
    return JSONResponse(
        {
            "success": True,
            "game": _game_payload(snapshot),
            "isEnded": snapshot.status == RoundStatus.ENDED,
            "correctAnswer": snapshot.correct_answer,
            "winner": winner,
            "participants": len(snapshot.participants),
        },
    )


async def wallet_info(request: Request) -> JSONResponse:
    settings: ServerSettings = request.app.state.settings
    address = settings.wallet_address
    return JSONResponse(
        {
            "success": True,
            "hasWallet": address is not None,
            "address": address,
            "message": "Private key wallet configured" if address else _WALLET_MISSING_MESSAGE,
        },
    )


async def health(_request: Request) -> JSONResponse:
    return JSONResponse(
        {
            "success": True,
            "message": "Prediction API is running",
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


async def internal_error(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error in request", exc_info=exc)
    return _error("Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR)


def create_app(
    settings: ServerSettings | None = None,
    sessions: dict[GameMode, GameSession] | None = None,
    wallet_pool: MockWalletPool | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ServerSettings()

    if sessions is None:
        sessions = build_sessions(settings)

    routes = [
        Route("/join", join, methods=["POST"]),
        Route("/status", status, methods=["GET"]),
        Route("/result", result, methods=["GET"]),
        Route("/wallet-info", wallet_info, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        for session in sessions.values():
            await session.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan, exception_handlers={Exception: internal_error})
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.wallet_pool = wallet_pool or MockWalletPool()

    logger.info("prediction server ready", modes=[mode.value for mode in sessions])
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = ServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
