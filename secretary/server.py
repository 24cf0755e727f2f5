"""Status server for Secretary - exposes session state, chat log and hotkey endpoints."""

from __future__ import annotations

import argparse
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from secretary.config import Config
    from secretary.coordinator import PipelineCoordinator
    from secretary.types import HealthCheck, StateResponse

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765

_coordinator: PipelineCoordinator | None = None
_config: Config | None = None


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Not initialized"}, status_code=503)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global _coordinator, _config

    print("\n🌐 Secretary Status Server")
    print("=" * 40)

    from dotenv import load_dotenv

    from secretary.app import build_coordinator
    from secretary.config import Config

    load_dotenv()
    _config = Config.from_env()
    _coordinator = build_coordinator(_config)
    _coordinator.start()
    logger.info("Coordinator started")

    print("\n✅ Server ready!")
    print(f"   Languages: {', '.join(_config.transcription.languages) or 'auto-detect'}")
    print(f"   Router model: {_config.router.model}")
    print("=" * 40)

    yield

    print("\n👋 Shutting down...")
    _coordinator.stop()
    _coordinator = None


def create_app() -> FastAPI:
    app = FastAPI(
        title="Secretary Status API",
        description="Push-to-talk voice command assistant",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        health: HealthCheck = {
            "status": "healthy",
            "coordinator_running": _coordinator is not None and _coordinator.is_running,
        }
        return JSONResponse(health)

    @app.get("/config")
    async def get_config():
        if _config is None:
            return _not_ready()

        return JSONResponse({
            "languages": _config.transcription.languages,
            "transcription_model": _config.transcription.model,
            "router_model": _config.router.model,
            "min_recording_s": _config.min_recording_s,
            "sample_rate": _config.audio.sample_rate,
            "has_transcription_key": bool(_config.transcription.api_key),
            "has_router_key": bool(_config.router.api_key),
        })

    @app.get("/state")
    async def get_state():
        if _coordinator is None:
            return _not_ready()
        state: StateResponse = {
            "state": _coordinator.state.value,
            "levels": _coordinator.levels,
        }
        return JSONResponse(state)

    @app.get("/messages")
    async def get_messages():
        if _coordinator is None:
            return _not_ready()
        return JSONResponse([m.to_dict() for m in _coordinator.chat_log.messages])

    @app.post("/ptt/press", status_code=202)
    async def ptt_press():
        if _coordinator is None:
            return _not_ready()
        _coordinator.press()
        return {"accepted": True}

    @app.post("/ptt/release", status_code=202)
    async def ptt_release():
        if _coordinator is None:
            return _not_ready()
        _coordinator.release()
        return {"accepted": True}

    @app.post("/ptt/paste-last", status_code=202)
    async def paste_last():
        if _coordinator is None:
            return _not_ready()
        _coordinator.paste_last_transcript()
        return {"accepted": True}

    return app


def main():
    parser = argparse.ArgumentParser(description="Secretary Status Server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args()

    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    print(f"\n🚀 Starting Secretary Status Server at http://{args.host}:{args.port}")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "secretary.server:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
