"""FastAPI application entry point"""

from typing import Any, Callable, Dict, List, Optional
import logging
import uuid

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from starhistory.config.settings import settings
from starhistory.crawlers.github.history_source import GitHubHistorySource
from starhistory.models.chart import AlignmentMode
from starhistory.services.history.errors import HistoryFetchError, LocalPreconditionError
from starhistory.services.history.failure_classifier import RecoveryAction, classify_failure
from starhistory.services.history.fetcher import HistorySource
from starhistory.services.history.repo_ids import normalize_tracked_ids
from starhistory.session import StarHistorySession

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class CreateSessionRequest(BaseModel):
    repos: List[str] = Field(default_factory=list)
    mode: Optional[str] = None
    token: Optional[str] = None


class ReposRequest(BaseModel):
    repos: List[str]


class ModeRequest(BaseModel):
    mode: str


class TokenRequest(BaseModel):
    token: Optional[str] = None


class SessionRegistry:
    """In-memory sessions keyed by id; one per API client."""

    def __init__(self, source_factory: Callable[[], HistorySource]) -> None:
        self._source_factory = source_factory
        self._sessions: Dict[str, StarHistorySession] = {}
        self._removed: Dict[str, List[str]] = {}

    def create(self, *, mode: Optional[AlignmentMode], token: Optional[str]) -> tuple:
        session_id = uuid.uuid4().hex
        removed: List[str] = []

        def record_removal(repo_id: str) -> None:
            if repo_id not in removed:
                removed.append(repo_id)

        session = StarHistorySession(
            credential=token,
            mode=mode,
            source=self.new_source(),
            on_repo_removed=record_removal,
        )
        self._sessions[session_id] = session
        self._removed[session_id] = removed
        return session_id, session

    def get(self, session_id: str) -> StarHistorySession:
        session = self._sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        return session

    def delete(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]
        self._removed.pop(session_id, None)

    def new_source(self) -> HistorySource:
        return self._source_factory()

    def removed(self, session_id: str) -> List[str]:
        return list(self._removed.get(session_id, []))

    def clear_removed(self, session_id: str) -> None:
        self._removed[session_id].clear()

    def __len__(self) -> int:
        return len(self._sessions)


def session_status(registry: SessionRegistry, session_id: str) -> Dict[str, Any]:
    session = registry.get(session_id)
    return {
        "id": session_id,
        "repos": list(session.tracked_ids),
        "mode": session.mode.value,
        "state": session.state.value,
        "is_fetching": session.is_fetching,
        "credential_required": session.credential_required,
        "removed": registry.removed(session_id),
        "hash": session.share_hash,
    }


def create_app(source_factory: Optional[Callable[[], HistorySource]] = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Comparative GitHub star history for tracked repositories",
        version=settings.APP_VERSION,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = SessionRegistry(source_factory or GitHubHistorySource)
    app.state.sessions = registry

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "star-history",
            "version": settings.APP_VERSION,
            "sessions": len(registry),
        }

    @app.post("/api/sessions", status_code=201)
    async def create_session(request: CreateSessionRequest):
        """Create a session and run its first fetch cycle"""
        repos = _validated(request.repos)
        mode = _validated_mode(request.mode) if request.mode is not None else None
        session_id, session = registry.create(mode=mode, token=request.token)
        report = await session.set_tracked(repos)
        logger.info(f"Session {session_id} created with {len(session.tracked_ids)} repos")
        return {**session_status(registry, session_id), "report": report.as_dict()}

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        return session_status(registry, session_id)

    @app.delete("/api/sessions/{session_id}", status_code=204)
    async def delete_session(session_id: str):
        registry.delete(session_id)
        logger.info(f"Session {session_id} deleted")

    @app.get("/api/sessions/{session_id}/chart")
    async def get_chart(session_id: str):
        """Current chart data; `chart` is null until some tracked repository has data"""
        session = registry.get(session_id)
        chart = session.chart_data
        return {"chart": chart.to_payload() if chart is not None else None}

    @app.put("/api/sessions/{session_id}/repos")
    async def replace_repos(session_id: str, request: ReposRequest):
        session = registry.get(session_id)
        repos = _validated(request.repos)
        registry.clear_removed(session_id)
        report = await session.set_tracked(repos)
        return {**session_status(registry, session_id), "report": report.as_dict()}

    @app.put("/api/sessions/{session_id}/mode")
    async def set_mode(session_id: str, request: ModeRequest):
        """Switch alignment; recomposes from cache without fetching"""
        session = registry.get(session_id)
        chart = session.set_mode(_validated_mode(request.mode))
        return {
            **session_status(registry, session_id),
            "chart": chart.to_payload() if chart is not None else None,
        }

    @app.put("/api/sessions/{session_id}/token")
    async def set_token(session_id: str, request: TokenRequest):
        session = registry.get(session_id)
        report = await session.set_credential(request.token)
        return {**session_status(registry, session_id), "report": report.as_dict()}

    @app.get("/api/stargazers/{owner}/{name}")
    async def stargazer_count(owner: str, name: str, token: Optional[str] = None):
        """Live stargazer count, independent of any session cache"""
        source = registry.new_source()
        repo_id = f"{owner}/{name}"
        try:
            count = await source.get_stargazer_count(repo_id, token)
        except HistoryFetchError as exc:
            raise HTTPException(status_code=_http_status(exc), detail=str(exc)) from exc
        return {"repo": repo_id, "stargazers": count}

    return app


def _validated(repos: List[str]) -> List[str]:
    try:
        return normalize_tracked_ids(repos)
    except LocalPreconditionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _validated_mode(raw: str) -> AlignmentMode:
    mode = AlignmentMode.lookup(raw)
    if mode is None:
        allowed = ", ".join(member.value for member in AlignmentMode)
        raise HTTPException(status_code=422, detail=f"Unknown mode: {raw} (expected one of {allowed})")
    return mode


def _http_status(error: HistoryFetchError) -> int:
    action = classify_failure(error).action
    if action is RecoveryAction.REQUEST_CREDENTIAL:
        return 401
    if action is RecoveryAction.DROP_REPOSITORY:
        return 404
    return 502


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "starhistory.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
