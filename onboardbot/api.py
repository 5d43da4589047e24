"""HTTP entrypoint for the onboarding conversation.

Run with::

    uvicorn onboardbot.api:create_app --factory

The store and agent are built explicitly and handed to :func:`create_app`,
so tests can pass an in-memory store and a fake model client.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .graph import build_turn_graph, run_turn
from .onboarding.agent import OnboardingAgent
from .onboarding.prompts import DEFAULT_QUESTIONS
from .onboarding.review import ReviewError, accept_review, load_review
from .onboarding.schemas import (
    ErrorResponse,
    ProfileResponse,
    ReviewPayload,
    ReviewRequest,
    TurnRequest,
    TurnResponse,
)
from .onboarding.storage import ConversationStore, StorageError, SupabaseConversationStore

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}
# The review page also loads its conversation with GET.
REVIEW_CORS_HEADERS = {**CORS_HEADERS, "Access-Control-Allow-Methods": "GET, POST, OPTIONS"}

FALLBACK_MESSAGE = DEFAULT_QUESTIONS["interest"]

_FIELD_ERRORS = {
    "user_id": "Invalid user_id",
    "response": "Invalid response",
    "answers": "Invalid answers",
}


def _validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        for part in err.get("loc", ()):
            if part in _FIELD_ERRORS:
                return _FIELD_ERRORS[part]
    return "Invalid request body"


def _cors_headers(path: str) -> dict:
    return REVIEW_CORS_HEADERS if path.startswith("/onboarding/review") else CORS_HEADERS


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    body = ErrorResponse(error=error, **extra).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def create_app(
    store: Optional[ConversationStore] = None,
    agent: Optional[OnboardingAgent] = None,
) -> FastAPI:
    """Build the FastAPI app around an explicit store and agent."""
    if store is None:
        from .onboarding.client import get_supabase_client

        store = SupabaseConversationStore(get_supabase_client())
    agent = agent or OnboardingAgent()
    graph = build_turn_graph(store, agent)

    app = FastAPI(title="onboardbot")
    app.state.store = store
    app.state.graph = graph

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(_cors_headers(request.url.path))
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = _error(exc.status_code, str(exc.detail))
        response.headers.update(getattr(exc, "headers", None) or {})
        return response

    @app.options("/onboarding")
    @app.options("/onboarding/review")
    def preflight(request: Request) -> Response:
        return Response(status_code=204, headers=_cors_headers(request.url.path))

    @app.api_route("/onboarding", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
    def method_not_allowed() -> JSONResponse:
        return _error(405, "Method Not Allowed")

    @app.post("/onboarding", response_model=TurnResponse)
    def onboarding_turn(body: TurnRequest):
        try:
            result = run_turn(graph, body.user_id, body.response)
        except StorageError as e:
            logger.error(f"Storage error: {e} (user_id={body.user_id}, response={body.response or 'none'})")
            return _error(500, "Server error", message=FALLBACK_MESSAGE, is_complete=False)
        except Exception:
            logger.exception(f"Unexpected error (user_id={body.user_id}, response={body.response or 'none'})")
            return _error(500, "Server error", message=FALLBACK_MESSAGE, is_complete=False)
        return TurnResponse(**result)

    @app.get("/onboarding/review", response_model=ReviewPayload)
    def get_review(user_id: str):
        if not user_id.strip():
            return _error(400, "Invalid user_id")
        try:
            return ReviewPayload(**load_review(store, user_id))
        except ReviewError as e:
            return _error(e.status_code, str(e))
        except StorageError as e:
            logger.error(f"Storage error loading review for {user_id}: {e}")
            return _error(500, "Failed to load messages. Please try again.")

    @app.post("/onboarding/review", response_model=ProfileResponse)
    def post_review(body: ReviewRequest):
        try:
            profile = accept_review(store, body.user_id, body.answers)
        except ReviewError as e:
            return _error(e.status_code, str(e))
        except StorageError as e:
            logger.error(f"Storage error accepting review for {body.user_id}: {e}")
            return _error(500, "Failed to save. Please try again!")
        return ProfileResponse(**profile)

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "onboardbot.api:create_app",
        factory=True,
        host=os.getenv("ONBOARD_HOST", "127.0.0.1"),
        port=int(os.getenv("ONBOARD_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
