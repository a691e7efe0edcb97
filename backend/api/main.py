import sys
import logging
import os
import time
import uuid
from datetime import datetime
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

sys.path.append(str(Path(__file__).parent.parent))

from services.decoder import FitDecoder


API_VERSION = "0.3.0"

# Champs de contexte toujours presents dans le format des logs.
_LOG_CONTEXT_DEFAULTS = {"request_id": "-", "records": "-"}


class _AnalysisContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for key, default in _LOG_CONTEXT_DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, default)
        return True


def _log_dir() -> Path:
    repo_root = Path(__file__).resolve().parents[2]
    return Path(os.environ.get("RIDESCOPE_LOG_DIR", repo_root / "logs"))


def _configure_logging() -> logging.Logger:
    logs_dir = _log_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"ridescope_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    level = logging.getLevelName(os.environ.get("RIDESCOPE_LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("ridescope")
    logger.setLevel(level)
    logger.propagate = False
    # Reload uvicorn / runner de tests : un seul jeu de handlers.
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] [request_id=%(request_id)s] [records=%(records)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in (logging.FileHandler(log_path, encoding="utf-8"), logging.StreamHandler()):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_AnalysisContextFilter())
        logger.addHandler(handler)

    logger.info("backend_start version=%s log_file=%s", API_VERSION, log_path)
    return logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = _configure_logging()

    app.state.logger = logger
    # Decodeur possede par l'application, passe explicitement a chaque analyse.
    app.state.decoder = FitDecoder()
    logger.info("decoder_ready check_crc=%s", app.state.decoder.check_crc)

    yield

    logger.info("backend_stop")


app = FastAPI(
    title="RideScope API",
    description="Analytics de seance pour fichiers FIT",
    version=API_VERSION,
    lifespan=lifespan,
)


def _request_context(request: Request, request_id: str, start: float) -> dict:
    """Contexte d'une requete ; `records` est renseigne par les routes d'analyse."""
    return {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "upload_bytes": request.headers.get("content-length"),
        "records": getattr(request.state, "records_total", "-"),
        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
    }


@app.middleware("http")
async def analysis_request_middleware(request: Request, call_next):
    logger: logging.Logger = request.app.state.logger
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_unhandled_exception", extra=_request_context(request, request_id, start))
        response = JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error", "request_id": request_id},
        )

    response.headers["X-Request-ID"] = request_id
    context = _request_context(request, request_id, start)
    context["status"] = response.status_code
    logger.info("request", extra=context)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

from api.routes.session import router as session_router

app.include_router(session_router)
app.include_router(session_router, prefix="/api", include_in_schema=False)


@app.get("/")
async def root():
    return {"message": "RideScope API", "version": API_VERSION, "docs": "/docs"}


@app.get("/health")
async def health_check(request: Request):
    """Etat du service et du decodeur FIT"""
    decoder = getattr(request.app.state, "decoder", None)
    if decoder is None:
        request.app.state.logger.error("health_failed reason=no_decoder")
        raise HTTPException(status_code=503, detail="Service unavailable: FIT decoder not initialised")
    return {"status": "healthy", "decoder": type(decoder).__name__, "version": API_VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
