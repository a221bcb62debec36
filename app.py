import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from research_engine.api.dashboard_endpoint import DashboardService, SectionNotRefreshable
from research_engine.cache.redis_client import close_redis, get_redis
from research_engine.catalog.sections import parse_section
from research_engine.config import PORT
from research_engine.models.company_query import (
    InvalidCompanyName,
    format_company_name,
    validate_company_name,
)
from research_engine.orchestrator.resolvers import build_resolvers
from research_engine.orchestrator.section_orchestrator import SectionOrchestrator
from sources.assistant import AssistantClient
from sources.remote_compute import RemoteComputeSource

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10

_http_client: Optional[httpx.AsyncClient] = None


async def get_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
            timeout=REQUEST_TIMEOUT,
        )
    return _http_client


def build_service(client: httpx.AsyncClient) -> DashboardService:
    remote = RemoteComputeSource(client)
    orchestrator = SectionOrchestrator(resolvers=build_resolvers(client, remote=remote))
    return DashboardService(orchestrator, remote=remote, assistant=AssistantClient(client))


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    if getattr(app.state, "service", None) is None:
        app.state.service = build_service(await get_client())
    yield
    await app.state.service.shutdown()
    if _http_client and not _http_client.is_closed:
        await _http_client.aclose()
    await close_redis()


app = FastAPI(
    title="Company Lens API",
    description="Company research dashboard: financials, news, filings and AI analysis per section.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AskRequest(BaseModel):
    company: str
    question: str
    session_id: Optional[str] = None


def _service(request: Request) -> DashboardService:
    return request.app.state.service


def _section_or_404(section: str):
    try:
        return parse_section(section)
    except ValueError:
        raise HTTPException(404, f"Unknown section: {section}")


@app.get("/")
async def root():
    return {"status": "ok", "docs": "/docs", "api": "/api/dashboard/Apple"}


@app.get("/health")
async def health():
    r = await get_redis()
    return {
        "status": "healthy",
        "redis": "connected" if r else "unavailable (using memory cache)",
        "timestamp": int(time.time()),
    }


@app.get("/api/validate", tags=["Dashboard"])
async def validate(company: str = Query("", description="Company name as typed")):
    try:
        name = validate_company_name(company)
    except InvalidCompanyName as e:
        raise HTTPException(400, str(e))
    return {"valid": True, "company": format_company_name(name)}


@app.get("/api/dashboard/{company}", tags=["Dashboard"])
async def open_dashboard(company: str, request: Request):
    try:
        return _service(request).open(company)
    except InvalidCompanyName as e:
        raise HTTPException(400, str(e))


@app.get("/api/dashboard/{company}/sections/{section}", tags=["Dashboard"])
async def get_section(company: str, section: str, request: Request):
    target = _section_or_404(section)
    try:
        return _service(request).section_state(company, target)
    except InvalidCompanyName as e:
        raise HTTPException(400, str(e))


@app.post("/api/dashboard/{company}/refresh/{section}", tags=["Dashboard"])
async def refresh_section(company: str, section: str, request: Request):
    target = _section_or_404(section)
    try:
        return await _service(request).refresh(company, target)
    except (InvalidCompanyName, SectionNotRefreshable) as e:
        raise HTTPException(400, str(e))


@app.post("/api/ask", tags=["Assistant"])
async def ask(body: AskRequest, request: Request):
    if not body.question.strip():
        raise HTTPException(400, "Please enter a question")
    try:
        return await _service(request).ask(body.company, body.question, body.session_id)
    except InvalidCompanyName as e:
        raise HTTPException(400, str(e))


class ConnectionManager:
    def __init__(self):
        self.active: Dict[str, List[WebSocket]] = {}

    async def connect(self, ws: WebSocket, company: str):
        await ws.accept()
        self.active.setdefault(company, []).append(ws)

    def disconnect(self, ws: WebSocket, company: str):
        if company in self.active:
            self.active[company] = [w for w in self.active[company] if w != ws]
            if not self.active[company]:
                del self.active[company]


manager = ConnectionManager()


@app.websocket("/ws/dashboard/{company}")
async def websocket_dashboard(websocket: WebSocket, company: str):
    service: DashboardService = websocket.app.state.service
    try:
        company = format_company_name(validate_company_name(company))
    except InvalidCompanyName as e:
        await websocket.close(code=1008, reason=str(e))
        return

    await manager.connect(websocket, company.lower())
    unsubscribe = service.orchestrator.subscribe(company, websocket.send_json)
    try:
        snapshot = service.open(company)
        snapshot["type"] = "snapshot"
        await websocket.send_json(snapshot)
        while True:
            # Client messages are ignored; receiving detects disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.info(f"WS disconnected: {company}")
    except RuntimeError as e:
        log.error(f"WS error for {company}: {e}")
    finally:
        unsubscribe()
        manager.disconnect(websocket, company.lower())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=PORT, reload=False, log_level="info")
