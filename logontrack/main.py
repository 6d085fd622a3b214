from dotenv import load_dotenv
load_dotenv()  # .env before any settings are read

# logontrack/main.py
from fastapi import FastAPI

from logontrack import __version__
from logontrack.api.errors import register_error_handlers
from logontrack.api.routes_events import router as events_router
from logontrack.api.routes_metrics import router as metrics_router
from logontrack.core.logging import SERVICE_NAME, get_logger, setup_logging
from logontrack.core.settings import get_settings
from logontrack.db.session import init_models
from logontrack.metrics import get_metrics
from logontrack.observability.middleware_latency import LatencyMiddleware
from logontrack.observability.middleware_request_id import RequestIdMiddleware
from logontrack.sessions import KeyedLock, generate_session_id
from logontrack.sinks.jsonl import JsonlEventSink

settings = get_settings()
setup_logging(json_output=settings.LOG_JSON, level=settings.LOG_LEVEL)
log = get_logger(__name__)

app = FastAPI(title="logontrack", version=__version__)

# ---- shared state: metrics registry, id source, per-pair locks
app.state.logontrack_metrics = get_metrics()
app.state.session_ids = generate_session_id
app.state.session_locks = KeyedLock()
app.state.event_sink = JsonlEventSink(settings.EVENT_LOG_PATH) if settings.EVENT_BACKEND == "jsonl" else None

register_error_handlers(app)


@app.get("/health")
def health():
    return {"status": "ok", "service": SERVICE_NAME, "version": __version__}


app.include_router(metrics_router)
app.include_router(events_router)


@app.on_event("startup")
async def _startup():
    log.info(
        "service.starting",
        version=__version__,
        env=settings.APP_ENV,
        backend=settings.EVENT_BACKEND,
        session_locking=settings.SESSION_LOCKING,
    )
    if settings.EVENT_BACKEND == "sql" and settings.DB_AUTO_CREATE:
        await init_models()


@app.on_event("shutdown")
async def _shutdown():
    log.info("service.stopping")


# Starlette: the last middleware added runs first (outermost).
# Request id goes last so latency and every log line see it.
app.add_middleware(LatencyMiddleware)
app.add_middleware(RequestIdMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("logontrack.main:app", host=settings.HOST, port=settings.PORT)
