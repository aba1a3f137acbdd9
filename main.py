"""FastAPI application that serves portfolio data and a guarded chatbot."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from app.chatbot import DISABLED_REPLY, ChatbotService
from app.clients.openai_chat import OpenAIChatClient, OpenAIError
from app.config import get_settings
from app.guard import ChatbotGuard, InvalidInput, RateLimited
from app.logging_config import configure_logging
from app.rate_limit import RateLimiter, run_cleanup_loop
from app.store import InvalidObjectId, PortfolioStore, StoreError
from app.utils import resolve_client_ip

configure_logging()
LOGGER = logging.getLogger(__name__)

settings = get_settings()
store = PortfolioStore.from_settings(settings)
chatbot: Optional[ChatbotService] = None
if settings.chatbot_enabled:
    chatbot = ChatbotService(store, OpenAIChatClient(settings), settings)
    LOGGER.info("chatbot enabled", extra={"model": settings.openai_model})
else:
    LOGGER.warning("OPENAI_API_KEY not set, chatbot disabled", extra={"model": "DISABLED"})


def build_guard() -> ChatbotGuard:
    """Create the chatbot guard and its rate limiter from settings."""

    limiter = RateLimiter(
        short_limit=settings.chatbot_rate_limit_per_minute,
        short_window_seconds=60,
        long_limit=settings.chatbot_rate_limit_per_window,
        long_window_seconds=settings.chatbot_rate_limit_window_seconds,
    )
    return ChatbotGuard(limiter, max_length=settings.chatbot_max_input_length)


@asynccontextmanager
async def lifespan(app: FastAPI):
    guard: ChatbotGuard = app.state.chatbot_guard
    cleanup_task = asyncio.create_task(
        run_cleanup_loop(guard.rate_limiter, settings.rate_limit_cleanup_seconds)
    )
    LOGGER.info(
        "server started",
        extra={"route": "SERVER_START", "status": "SUCCESS", "model": settings.model_label},
    )
    yield
    cleanup_task.cancel()


app = FastAPI(title="Portfolio API", lifespan=lifespan)
app.state.chatbot_guard = build_guard()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):  # type: ignore[override]
    client_ip = resolve_client_ip(request.headers, request.client.host if request.client else None)
    try:
        response = await call_next(request)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception(
            "Unhandled exception",
            extra={"client_ip": client_ip, "route": request.url.path, "model": settings.model_label},
        )
        raise exc
    LOGGER.info(
        "request handled",
        extra={
            "client_ip": client_ip,
            "route": request.url.path,
            "status": response.status_code,
            "model": settings.model_label,
        },
    )
    return response


def get_store() -> PortfolioStore:
    """Provide the shared portfolio store."""

    return store


def get_chatbot() -> Optional[ChatbotService]:
    """Provide the chatbot service, or ``None`` when no API key is configured."""

    return chatbot


def get_guard(request: Request) -> ChatbotGuard:
    return request.app.state.chatbot_guard


def _run_query(route: str, loader: Callable[[], Any]) -> Any:
    try:
        return loader()
    except InvalidObjectId as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        LOGGER.warning("store error", extra={"route": route, "detail": str(exc)})
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _single(document: Optional[dict], message: str) -> list[dict]:
    if document is None:
        raise HTTPException(status_code=404, detail=message)
    return [document]


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok", "chatbot": settings.chatbot_enabled}


@app.get("/api/authors")
def list_authors(
    name: Optional[str] = Query(None, description="Case-insensitive name match."),
    email: Optional[str] = Query(None, description="Exact email address."),
    portfolio: PortfolioStore = Depends(get_store),
) -> list[dict]:
    """Return all authors, or the single author matching ``name`` or ``email``."""

    route = "/api/authors"
    if name:
        return _single(_run_query(route, lambda: portfolio.author_by_name(name)), "Author not found")
    if email:
        return _single(
            _run_query(route, lambda: portfolio.author_by_email(email)), "Author not found"
        )
    return _run_query(route, portfolio.all_authors)


@app.get("/api/authors/count")
def count_authors(portfolio: PortfolioStore = Depends(get_store)) -> dict:
    return {"count": _run_query("/api/authors/count", portfolio.count_authors)}


@app.get("/api/projects")
def list_projects(
    name: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    technology: Optional[str] = Query(None),
    author_id: Optional[str] = Query(None),
    portfolio: PortfolioStore = Depends(get_store),
) -> list[dict]:
    """Return projects filtered by the first query parameter supplied."""

    route = "/api/projects"
    if name:
        return _single(
            _run_query(route, lambda: portfolio.project_by_name(name)), "Project not found"
        )
    if category:
        return _run_query(route, lambda: portfolio.projects_by_category(category))
    if technology:
        return _run_query(route, lambda: portfolio.projects_by_technology(technology))
    if author_id:
        return _run_query(route, lambda: portfolio.projects_by_author(author_id))
    return _run_query(route, portfolio.all_projects)


@app.get("/api/projects/count")
def count_projects(portfolio: PortfolioStore = Depends(get_store)) -> dict:
    return {"count": _run_query("/api/projects/count", portfolio.count_projects)}


@app.get("/api/education")
def list_education(
    university: Optional[str] = Query(None),
    major: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    portfolio: PortfolioStore = Depends(get_store),
) -> list[dict]:
    route = "/api/education"
    if university:
        return _run_query(route, lambda: portfolio.education_by_university(university))
    if major:
        return _run_query(route, lambda: portfolio.education_by_major(major))
    if student_id:
        return _run_query(route, lambda: portfolio.education_by_student(student_id))
    return _run_query(route, portfolio.all_education)


@app.get("/api/education/count")
def count_education(portfolio: PortfolioStore = Depends(get_store)) -> dict:
    return {"count": _run_query("/api/education/count", portfolio.count_education)}


@app.get("/api/resumes")
def list_resumes(
    author_id: Optional[str] = Query(None),
    skill: Optional[str] = Query(None),
    portfolio: PortfolioStore = Depends(get_store),
) -> list[dict]:
    route = "/api/resumes"
    if author_id:
        return _single(
            _run_query(route, lambda: portfolio.resume_by_author(author_id)), "Resume not found"
        )
    if skill:
        return _run_query(route, lambda: portfolio.resumes_by_skill(skill))
    return _run_query(route, portfolio.all_resumes)


@app.get("/api/resumes/count")
def count_resumes(portfolio: PortfolioStore = Depends(get_store)) -> dict:
    return {"count": _run_query("/api/resumes/count", portfolio.count_resumes)}


@app.get("/api/search")
def search(
    q: Optional[str] = Query(None, description="Free-text search across all collections."),
    portfolio: PortfolioStore = Depends(get_store),
) -> dict:
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return _run_query("/api/search", lambda: portfolio.search_all(q))


class ChatbotRequest(BaseModel):
    query: str = ""


@app.post("/api/chatbot")
def ask_chatbot(
    payload: ChatbotRequest,
    request: Request,
    guard: ChatbotGuard = Depends(get_guard),
    service: Optional[ChatbotService] = Depends(get_chatbot),
) -> dict:
    """Answer a portfolio question after rate limiting and input checks."""

    client_ip = resolve_client_ip(request.headers, request.client.host if request.client else None)
    try:
        guard.check(client_ip, payload.query)
    except RateLimited as exc:
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Please wait before making another request.",
        ) from exc
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=f"Invalid input: {exc.reason}") from exc

    if service is None:
        return {"response": DISABLED_REPLY, "query": payload.query}

    try:
        answer = service.answer(payload.query)
    except OpenAIError as exc:
        LOGGER.warning("OpenAI error", extra={"client_ip": client_ip, "detail": str(exc)})
        raise HTTPException(status_code=502, detail=f"Chatbot error: {exc}") from exc
    except StoreError as exc:
        LOGGER.warning("store error", extra={"client_ip": client_ip, "detail": str(exc)})
        raise HTTPException(status_code=500, detail="Failed to search portfolio data.") from exc

    return {"response": answer, "query": payload.query}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
