"""
LLM Metrics Service: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the endpoints:
- /completions: Simulated completion with metric recording
- /metrics: Prometheus exposition of the in-process collector
- /metrics/summary: Aggregate statistics from the metrics store
- /metrics/costs: Cost breakdown by time bucket and model
- /demo/generate: Sequential demo traffic
- /health, /config, /models: Operational information

Legacy paths (/api/llm/chat, /api/llm/generate, /api/metrics/llm/summary,
/api/metrics/llm/costs, /api/demo/generate-metrics) are served by the same
handlers. The request path is the endpoint label on recorded metrics.

The application uses a lifespan context manager to:
1. Load configuration and configure logging
2. Connect to the metrics store (startup fails if it is unreachable)
3. Build the collector, simulator, completion service and demo generator
4. Flush buffered metrics and close the connection pool on shutdown
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Depends, Query, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from llm_metrics import __version__
from llm_metrics.config import Settings, get_settings, configure_logging
from llm_metrics.metrics import MetricsCollector
from llm_metrics.registry import get_model_registry
from llm_metrics.schemas import (
    CompletionRequest,
    CompletionResponse,
    ComponentHealth,
    CostBreakdown,
    DemoRequest,
    DemoResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    MetricsSummary,
    completion_response_from_outcome,
)
from llm_metrics.service import CompletionService, DemoGenerator
from llm_metrics.simulator import CompletionSimulator
from llm_metrics.storage import (
    DEFAULT_TIME_RANGE,
    MetricsBatchWriter,
    MetricsDatabase,
    PersistenceError,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "llm-metrics-service"

# Number of demo outcomes echoed back in the demo response
DEMO_PREVIEW_SIZE = 5

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Connects to the metrics store
    - Wires the completion service and its collaborators onto app.state

    On shutdown:
    - Flushes the batch writer (buffered mode)
    - Closes the database connection pool
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("LLM Metrics Service starting up...")
    logger.info("=" * 60)
    logger.info(f"Database: {settings.timescale_host}:{settings.timescale_port}/{settings.timescale_db}")
    logger.info(f"Persistence mode: {settings.persistence_mode}")
    logger.info(f"Default model: {settings.default_model}")
    logger.info(f"Simulator latency scale: {settings.simulator_latency_scale}")
    if settings.simulator_latency_scale == 0:
        logger.warning("Simulator latency disabled: successful completions will report zero TTFT")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")
    logger.info(f"API key: {'configured' if settings.has_real_api_key else 'demo placeholder'}")

    database = MetricsDatabase.from_settings(settings)
    await database.initialize(create_tables=settings.db_create_tables)

    batch_writer = None
    store = database
    if settings.persistence_mode == "buffered":
        batch_writer = MetricsBatchWriter(
            database,
            batch_size=settings.batch_size,
            flush_interval=settings.batch_flush_interval,
            max_buffer_size=settings.batch_max_buffer_size,
        )
        batch_writer.start()
        store = batch_writer

    collector = MetricsCollector(include_process_metrics=True)
    simulator = CompletionSimulator(latency_scale=settings.simulator_latency_scale)
    service = CompletionService(
        simulator,
        collector,
        store,
        default_model=settings.default_model,
        default_user_id=settings.default_user_id,
        default_max_tokens=settings.default_max_tokens,
        default_temperature=settings.default_temperature,
    )

    app.state.database = database
    app.state.batch_writer = batch_writer
    app.state.collector = collector
    app.state.service = service
    app.state.demo = DemoGenerator(
        service,
        error_rate=settings.demo_error_rate,
        delay=settings.demo_request_delay,
        error_message=settings.demo_error_message,
    )

    # Record start time for uptime tracking
    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("LLM Metrics Service ready to accept requests")

    yield  # Application runs here

    logger.info("LLM Metrics Service shutting down...")
    if batch_writer is not None:
        await batch_writer.shutdown()
    await database.close()


app = FastAPI(
    title="LLM Metrics Service",
    description="Simulated LLM completions with Prometheus and TimescaleDB metrics",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and latency of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
    )
    return response


def _persistence_failure(exc: PersistenceError) -> HTTPException:
    logger.error(f"Metrics store failure: {exc}")
    return HTTPException(
        status_code=500,
        detail={"code": ErrorCodes.PERSISTENCE_ERROR, "message": "Internal server error"},
    )


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "LLM Metrics Service",
        "description": "Simulated LLM completions with metrics collection",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
        "config": "/config"
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check system health and component status.",
)
async def health_check(request: Request):
    """
    Health check endpoint for monitoring and orchestration.

    Checks:
    - Metrics store round-trip latency
    - Registry availability
    - System uptime
    """
    components = []
    overall_status = "healthy"

    try:
        latency_ms = await request.app.state.database.health_check()
        components.append(
            ComponentHealth(
                name="database",
                status="healthy",
                latency_ms=latency_ms,
            )
        )
    except PersistenceError as e:
        components.append(
            ComponentHealth(
                name="database",
                status="unhealthy",
                message=str(e),
            )
        )
        overall_status = "unhealthy"

    registry = get_model_registry()
    model_count = len(registry.list_models())
    components.append(
        ComponentHealth(
            name="registry",
            status="healthy" if model_count else "degraded",
            message=f"{model_count} models registered",
        )
    )
    if not model_count and overall_status == "healthy":
        overall_status = "degraded"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        service=SERVICE_NAME,
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    Credentials are SecretStr and are NOT exposed in this endpoint.
    """
    return {
        "database": {
            "host": settings.timescale_host,
            "port": settings.timescale_port,
            "name": settings.timescale_db,
            "schema": settings.db_schema,
            "pool_size": settings.db_pool_size,
            "persistence_mode": settings.persistence_mode,
        },
        "completions": {
            "default_model": settings.default_model,
            "default_max_tokens": settings.default_max_tokens,
            "default_temperature": settings.default_temperature,
            "simulator_latency_scale": settings.simulator_latency_scale,
            "has_real_api_key": settings.has_real_api_key,
        },
        "demo": {
            "error_rate": settings.demo_error_rate,
            "request_delay": settings.demo_request_delay,
        },
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug
        },
        "logging": {
            "level": settings.log_level
        },
    }


@app.get("/models")
async def list_models():
    """
    List all priced models.

    Models not listed here can still be requested; they use the default
    latency and a fixed fallback cost.
    """
    registry = get_model_registry()

    return {
        "models": [
            {
                "model_id": model.model_id,
                "display_name": model.display_name,
                "cost_per_1k_input": model.cost_per_1k_input_tokens,
                "cost_per_1k_output": model.cost_per_1k_output_tokens,
                "base_latency_s": model.base_latency_s,
                "premium": model.premium,
            }
            for model in registry.list_models()
        ],
        "total_models": len(registry.list_models()),
    }


@app.post(
    "/completions",
    response_model=CompletionResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Generate completion",
    description="Run a simulated completion and record its metrics.",
)
@app.post("/api/llm/chat", response_model=CompletionResponse, include_in_schema=False)
@app.post("/api/llm/generate", response_model=CompletionResponse, include_in_schema=False)
async def create_completion(request: Request, body: CompletionRequest | None = None):
    """
    Main completion endpoint.

    Simulation failures are reported in the body with status 'error';
    only a metrics store failure yields an HTTP error.

    Flow:
    1. Validate the prompt
    2. Simulate the completion
    3. Record metrics in the collector and the store
    4. Return the outcome
    """
    if body is None or not body.prompt or not body.prompt.strip():
        raise HTTPException(
            status_code=400,
            detail={
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": "Prompt is required",
                "field": "prompt",
            },
        )

    service: CompletionService = request.app.state.service
    try:
        outcome = await service.generate_completion(
            body.prompt,
            model=body.model,
            user_id=body.user_id,
            max_tokens=body.max_tokens,
            temperature=body.temperature,
            endpoint=request.url.path,
        )
    except PersistenceError as e:
        raise _persistence_failure(e) from e

    return completion_response_from_outcome(outcome)


@app.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Point-in-time snapshot of the in-process collector.",
    response_class=Response,
)
async def prometheus_metrics(request: Request):
    """
    Return the collector in the Prometheus text exposition format.
    """
    collector: MetricsCollector = request.app.state.collector
    return Response(content=collector.render(), media_type=collector.content_type)


@app.get(
    "/metrics/summary",
    response_model=MetricsSummary,
    response_model_by_alias=True,
    responses={500: {"model": ErrorResponse}},
    summary="Metrics summary",
    description="Aggregate request statistics over a time window.",
)
@app.get("/api/metrics/llm/summary", response_model=MetricsSummary, include_in_schema=False)
async def metrics_summary(
    request: Request,
    time_range: str = Query(
        DEFAULT_TIME_RANGE,
        alias="timeRange",
        description="One of 1h, 6h, 12h, 24h, 7d, 30d (others mean 1h)",
    ),
    model: str | None = Query(None, description="Restrict to one model"),
):
    """
    Summarize stored metrics.

    Timing, throughput and cost figures consider successful requests only.
    """
    try:
        return await request.app.state.database.summarize(time_range, model=model)
    except PersistenceError as e:
        raise _persistence_failure(e) from e


@app.get(
    "/metrics/costs",
    response_model=list[CostBreakdown],
    response_model_by_alias=True,
    responses={500: {"model": ErrorResponse}},
    summary="Cost breakdown",
    description="Cost of successful requests by time bucket and model.",
)
@app.get("/api/metrics/llm/costs", response_model=list[CostBreakdown], include_in_schema=False)
async def metrics_costs(
    request: Request,
    time_range: str = Query("24h", alias="timeRange"),
    group_by: str = Query("hour", alias="groupBy", description="'hour' or 'day'"),
):
    """
    Break down cost by bucket and model, newest bucket first.
    """
    try:
        return await request.app.state.database.cost_breakdown(time_range, group_by=group_by)
    except PersistenceError as e:
        raise _persistence_failure(e) from e


@app.post(
    "/demo/generate",
    response_model=DemoResponse,
    response_model_by_alias=True,
    responses={422: {"model": ErrorResponse}},
    summary="Generate demo metrics",
    description="Run a batch of simulated completions sequentially.",
)
@app.post("/api/demo/generate-metrics", response_model=DemoResponse, include_in_schema=False)
async def generate_demo(request: Request, body: DemoRequest | None = None):
    """
    Generate demo traffic and return a preview of the first results.
    """
    body = body or DemoRequest()
    demo: DemoGenerator = request.app.state.demo

    logger.info(f"Demo generation requested: count={body.count}, include_errors={body.include_errors}")
    outcomes = await demo.generate(
        body.count, include_errors=body.include_errors, endpoint=request.url.path
    )

    return DemoResponse(
        message=f"Generated {len(outcomes)} demo metrics",
        results=[completion_response_from_outcome(o) for o in outcomes[:DEMO_PREVIEW_SIZE]],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "llm_metrics.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
