"""
Panel Hub API - FastAPI interface for agent ingestion and dashboard queries
"""
import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from panel_hub.auth import INVALID_TOKEN, Claims
from panel_hub.config import HubSettings
from panel_hub.errors import AuthenticationError, PanelError, ValidationError
from panel_hub.hub import Hub, open_hub
from panel_hub.ingest import resolve_client_ip
from panel_hub.metrics import normalize_days
from panel_hub.models import (
    MAX_BIGINT,
    ErrorResponse,
    HistoryResponse,
    IngestResponse,
    LoginData,
    LoginRequest,
    LoginResponse,
    MetricsPayload,
    NodesResponse,
    RealtimeResponse,
)

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r'[+-]?\d+')

bearer_scheme = HTTPBearer(auto_error=False)

ERROR_RESPONSES = {
    400: {'model': ErrorResponse, 'description': 'Malformed request'},
    500: {'model': ErrorResponse, 'description': 'Storage failure'},
}
AUTH_RESPONSES = {
    **ERROR_RESPONSES,
    401: {'model': ErrorResponse, 'description': 'Missing, invalid or expired token'},
}


# Dependencies
def get_hub(request: Request) -> Hub:
    return request.app.state.hub


def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    hub: Hub = Depends(get_hub)
) -> Claims:
    """Reject requests without a valid bearer token; expose the claims on request.state"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(INVALID_TOKEN)
    claims = hub.auth.validate(credentials.credentials)
    request.state.claims = claims
    return claims


def parse_node_id(value: Optional[str]) -> int:
    if value is None or not value.strip():
        raise ValidationError("node_id parameter required")
    if not _INTEGER.fullmatch(value.strip()):
        raise ValidationError("Invalid node_id")
    node_id = int(value)
    if not -MAX_BIGINT - 1 <= node_id <= MAX_BIGINT:
        raise ValidationError("Invalid node_id")
    return node_id


def parse_days(value: Optional[str]) -> int:
    if value is None or not value.strip():
        return 1
    if not _INTEGER.fullmatch(value.strip()):
        raise ValidationError("Invalid days")
    return normalize_days(int(value))


# Routes
public = APIRouter(prefix='/api')
protected = APIRouter(prefix='/api', dependencies=[Depends(require_token)], responses=AUTH_RESPONSES)


@public.post('/login', response_model=LoginResponse, responses={
    400: ERROR_RESPONSES[400],
    401: {'model': ErrorResponse, 'description': 'Invalid username or password'},
})
def login(body: LoginRequest, hub: Hub = Depends(get_hub)):
    """Exchange a username and password for a bearer token"""
    token, user = hub.auth.login(body.username, body.password)
    return LoginResponse(data=LoginData(token=token, user=user))


@public.post('/metrics', response_model=IngestResponse, responses=ERROR_RESPONSES)
def receive_metrics(
    payload: MetricsPayload,
    request: Request,
    node_name: Optional[str] = Header(default=None),
    hub: Hub = Depends(get_hub)
):
    """Store one sample pushed by an agent, registering the node on first sight"""
    peer = request.client.host if request.client else None
    ip = resolve_client_ip(request.headers, peer)
    hub.ingest.ingest(node_name, ip, payload)
    return IngestResponse(message="Metrics received successfully")


@protected.get('/nodes', response_model=NodesResponse)
def list_nodes(hub: Hub = Depends(get_hub)):
    """List all known nodes in registration order"""
    return NodesResponse(data=hub.registry.list_nodes())


@protected.get('/metrics/realtime', response_model=RealtimeResponse, responses={
    404: {'model': ErrorResponse, 'description': 'No metrics for this node'},
})
def realtime_metrics(node_id: Optional[str] = None, hub: Hub = Depends(get_hub)):
    """Latest sample for a node"""
    sample = hub.metrics.latest(parse_node_id(node_id))
    return RealtimeResponse(data=sample)


@protected.get('/metrics/history', response_model=HistoryResponse)
def history_metrics(
    node_id: Optional[str] = None,
    days: Optional[str] = None,
    hub: Hub = Depends(get_hub)
):
    """Samples from the last `days` days (default 1), newest first"""
    samples = hub.metrics.range(parse_node_id(node_id), parse_days(days))
    return HistoryResponse(samples=samples)


def create_app(settings: Optional[HubSettings] = None, hub: Optional[Hub] = None) -> FastAPI:
    """
    Build the FastAPI application.

    With a ready `hub` the caller owns its lifecycle; otherwise storage is
    opened on startup from `settings` and closed on shutdown.
    """
    settings = settings or (hub.settings if hub is not None else HubSettings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, 'hub', None) is None:
            owned = open_hub(settings)
            app.state.hub = owned
        yield
        if owned is not None:
            owned.close()
            app.state.hub = None

    app = FastAPI(
        title="Panel Hub",
        description="Collects host health samples from panel agents",
        lifespan=lifespan
    )
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=['Origin', 'Content-Type', 'Authorization', 'Node-Name'],
    )

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info("Request handled", extra={'context': {
            'method': request.method,
            'path': request.url.path,
            'status': response.status_code,
            'client': request.client.host if request.client else None,
            'duration_ms': round((time.perf_counter() - start) * 1000, 2),
        }})
        return response

    @app.exception_handler(PanelError)
    async def panel_error_handler(request: Request, exc: PanelError):
        headers = {'WWW-Authenticate': 'Bearer'} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=exc.message).model_dump(),
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Only locations and error types; inputs may hold passwords
        logger.debug("Rejected malformed request", extra={'context': {
            'path': request.url.path,
            'errors': [{'loc': e.get('loc'), 'type': e.get('type')} for e in exc.errors()],
        }})
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(message="Invalid request format").model_dump()
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", exc_info=exc, extra={'context': {
            'method': request.method,
            'path': request.url.path,
        }})
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(message="Internal server error").model_dump()
        )

    @app.get('/health')
    async def health():
        """Health check endpoint"""
        return {'status': 'healthy'}

    app.include_router(public)
    app.include_router(protected)
    return app


def run_server(hub: Hub) -> None:
    """Serve the hub with uvicorn until interrupted, then close storage"""
    settings = hub.settings
    app = create_app(settings, hub=hub)
    try:
        # log_config=None keeps uvicorn on the root logging setup
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    finally:
        hub.close()
