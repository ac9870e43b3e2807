# src/interfaces/api/main.py
"""FastAPI application exposing the relay endpoints.

Bot runtimes post chat events here and get one Decision back. The same
API serves bot registration, heartbeats and configuration polling.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from dotenv import load_dotenv
from fastapi import (
    BackgroundTasks,
    Depends,
    FastAPI,
    Header,
    HTTPException,
    Query,
    Request,
    Response,
)
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables from .env file
load_dotenv()

from src.config import settings  # noqa: E402
from src.core.auth import ResolvedIdentity, require_scope  # noqa: E402
from src.core.classifier import IntentClassifier, LiteLLMClient  # noqa: E402
from src.core.commands import BotPersona  # noqa: E402
from src.core.errors import Unauthorized  # noqa: E402
from src.core.memory import ConversationMemory  # noqa: E402
from src.core.policy import PolicyGate  # noqa: E402
from src.core.relay import (  # noqa: E402
    IdempotencyGuard,
    PendingSyncRegistry,
    RelayEngine,
    UsageReporter,
)
from src.core.store import RelayRepository, get_repository  # noqa: E402
from src.interfaces.api.schemas import (  # noqa: E402
    DecisionResponse,
    HeartbeatRequest,
    HeartbeatResponse,
    RegisterRequest,
    RegisterResponse,
    RelayEventIn,
)
from src.interfaces.api.security import (  # noqa: E402
    SCOPE_CONFIG,
    SCOPE_EVENTS,
    get_rate_limit_string,
    limiter,
    resolve_identity,
    verify_request_signature,
)
from src.utils import configure_structured_logging, setup_logfire  # noqa: E402

logger = logging.getLogger(__name__)

Identity = Annotated[ResolvedIdentity, Depends(resolve_identity)]
SignedIdentity = Annotated[ResolvedIdentity, Depends(verify_request_signature)]

_engine: RelayEngine | None = None
_reporter: UsageReporter | None = None
_sync_registry: PendingSyncRegistry | None = None


def get_engine() -> RelayEngine:
    """Get the singleton RelayEngine wired to the repository and the LLM client."""
    global _engine
    if _engine is None:
        repo = get_repository()
        _engine = RelayEngine(
            classifier=IntentClassifier(LiteLLMClient()),
            gate=PolicyGate(repo),
            memory=ConversationMemory(max_turns=settings.memory_max_turns),
            idempotency=IdempotencyGuard(ttl_seconds=settings.idempotency_ttl_seconds),
            catalog=repo,
            personas=repo,
        )
    return _engine


def get_usage_reporter() -> UsageReporter:
    global _reporter
    if _reporter is None:
        _reporter = UsageReporter(settings.billing_usage_url, settings.billing_api_key)
    return _reporter


def get_sync_registry() -> PendingSyncRegistry:
    global _sync_registry
    if _sync_registry is None:
        _sync_registry = PendingSyncRegistry()
    return _sync_registry


def get_store() -> RelayRepository:
    return get_repository()


Engine = Annotated[RelayEngine, Depends(get_engine)]
Reporter = Annotated[UsageReporter, Depends(get_usage_reporter)]
SyncRegistry = Annotated[PendingSyncRegistry, Depends(get_sync_registry)]
Repository = Annotated[RelayRepository, Depends(get_store)]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    configure_structured_logging()
    if settings.provider_api_key:
        logger.info("LLM provider key present - classifier ready (model=%s)", settings.llm_model)
    else:
        logger.warning("LLM_API_KEY not set - natural-language events will use keyword fallback")
    if not settings.billing_usage_url:
        logger.warning("BILLING_USAGE_URL not set - usage will not be reported")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="Relay Decision API",
    description="Turns chat events into command or conversation decisions",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
setup_logfire(app)


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def _owned_bot_id(
    identity: ResolvedIdentity, requested: str | None, repo: RelayRepository
) -> str | None:
    """Pick the bot a request acts on: the key-bound bot wins over the requested one.

    Raises:
        Unauthorized: 403 if the requested bot belongs to another tenant.
    """
    if identity.bot_id:
        return identity.bot_id
    if not requested:
        return None
    bot = repo.get_bot(requested)
    if bot is not None and bot.tenant_id != identity.tenant_id:
        raise Unauthorized("Bot belongs to another tenant", status_code=403)
    return requested


@app.post("/v1/relay/events", response_model=DecisionResponse)
@limiter.limit(get_rate_limit_string)
async def relay_event(
    request: Request,
    response: Response,
    event: RelayEventIn,
    background_tasks: BackgroundTasks,
    identity: SignedIdentity,
    engine: Engine,
    reporter: Reporter,
    repo: Repository,
    idempotency_key: Annotated[str | None, Header(alias="x-idempotency-key")] = None,
) -> DecisionResponse:
    """Turn one chat event into a Decision.

    Retries carrying the same ``x-idempotency-key`` within the replay
    window get the original Decision back. Billable decisions are
    reported to metering after the response is sent.

    Returns:
        DecisionResponse with the serialized Decision, or null.

    Raises:
        Unauthorized: 401 for bad credentials or signatures, 403 for
            missing scope or a foreign bot.
    """
    require_scope(identity, SCOPE_EVENTS)
    _owned_bot_id(identity, event.bot_id, repo)

    result = await engine.process(event.to_event(), identity, idempotency_key)
    decision = result.decision

    response.headers["x-request-id"] = decision.id if decision else result.request_id

    if result.billable and decision is not None:
        background_tasks.add_task(
            reporter.report,
            identity.tenant_id,
            result.bot_id,
            result.usage_key or decision.id,
            decision.id,
            decision.intent.value,
        )

    return DecisionResponse(decision=decision.to_dict() if decision else None)


@app.get("/v1/relay/config")
@limiter.limit(get_rate_limit_string)
async def get_config(
    request: Request,
    identity: Identity,
    repo: Repository,
    bot_id: Annotated[str | None, Query(alias="botId")] = None,
    version: int | None = None,
) -> dict[str, Any]:
    """Return a bot's configuration, creating the default one on first read.

    When the caller already holds the current version, only
    ``{"upToDate": true, "version": n}`` is returned.

    Raises:
        HTTPException: 400 if no bot id is known for the request.
    """
    require_scope(identity, SCOPE_CONFIG)
    resolved = _owned_bot_id(identity, bot_id, repo)
    if not resolved:
        raise HTTPException(status_code=400, detail="botId is required")

    config = repo.ensure_configuration(resolved)
    if version is not None and version >= config.version:
        return {"upToDate": True, "version": config.version}

    data = {to_camel(key): value for key, value in config.to_dict().items()}
    return {"upToDate": False, "version": config.version, "config": data}


@app.post("/v1/relay/register", response_model=RegisterResponse)
@limiter.limit(get_rate_limit_string)
async def register_bot(
    request: Request,
    body: RegisterRequest,
    identity: Identity,
    repo: Repository,
) -> RegisterResponse:
    """Register a bot runtime and return its relay bot id.

    Needs the events scope, like the rest of the bot runtime traffic.
    A key bound to a bot always registers that bot. Otherwise an existing
    bot is matched by id or by platform client id, and a new one is
    created when nothing matches.
    """
    require_scope(identity, SCOPE_EVENTS)
    bot_id = _owned_bot_id(identity, body.bot_id, repo)
    existing = repo.get_bot(bot_id) if bot_id else None
    if existing is None and bot_id is None and body.client_id:
        existing = repo.find_bot_by_client_id(identity.tenant_id, body.client_id)

    persona = BotPersona(
        bot_id=bot_id or (existing.bot_id if existing else ""),
        tenant_id=existing.tenant_id if existing else identity.tenant_id,
        name=body.name or (existing.name if existing else ""),
        personality=existing.personality if existing else "",
        examples=existing.examples if existing else "",
        connected=True,
        client_id=body.client_id or (existing.client_id if existing else None),
        platform=body.platform,
    )
    saved = repo.upsert_bot(persona)
    logger.info("Registered bot %s for tenant %s", saved.bot_id, saved.tenant_id)
    return RegisterResponse(bot_id=saved.bot_id)


@app.post("/v1/relay/heartbeat", response_model=HeartbeatResponse)
@limiter.limit(get_rate_limit_string)
async def heartbeat(
    request: Request,
    body: HeartbeatRequest,
    identity: Identity,
    repo: Repository,
    registry: SyncRegistry,
) -> HeartbeatResponse:
    """Mark the bot connected and hand over any pending command-sync request."""
    require_scope(identity, SCOPE_EVENTS)
    bot_id = _owned_bot_id(identity, body.bot_id, repo)
    if not bot_id:
        return HeartbeatResponse(ok=True, sync_requested=False)

    repo.set_bot_connected(bot_id, True)
    return HeartbeatResponse(ok=True, sync_requested=registry.consume(bot_id))


@app.post("/v1/relay/sync-request")
@limiter.limit(get_rate_limit_string)
async def request_sync(
    request: Request,
    body: HeartbeatRequest,
    identity: Identity,
    repo: Repository,
    registry: SyncRegistry,
) -> dict[str, Any]:
    """Ask the bot runtime to re-fetch its commands on its next heartbeat."""
    require_scope(identity, SCOPE_CONFIG)
    bot_id = _owned_bot_id(identity, body.bot_id, repo)
    if not bot_id:
        raise HTTPException(status_code=400, detail="botId is required")

    registry.mark(bot_id)
    return {"ok": True}


@app.get("/health")
@limiter.limit(get_rate_limit_string)
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Dictionary with health status and classifier availability.
    """
    return {
        "status": "healthy",
        "classifier_ready": bool(settings.provider_api_key),
    }
