"""HTTP surface for the iteration engine.

``POST /free-agent`` runs one iteration. Provider, parse and configuration
failures are part of the iteration's answer and come back as HTTP 200 with
``success: false``; only malformed request bodies are rejected (422).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Config
from .controller import IterationController
from .schemas import IterationRequest


def create_app(controller: Optional[IterationController] = None) -> FastAPI:
    """Build the FastAPI app around a controller (a default one when omitted)."""

    app = FastAPI(title="FreeAgent Iteration Engine", version=__version__)
    app.state.controller = controller or IterationController()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__, "defaultModel": Config.DEFAULT_MODEL}

    @app.post("/free-agent")
    async def free_agent(payload: IterationRequest) -> JSONResponse:
        response = await app.state.controller.run_iteration(payload)
        return JSONResponse(response.model_dump(mode="json", by_alias=True))

    return app


app = create_app()
