import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from simas.api.v1.atendimentos import router as atendimentos_router
from simas.api.v1.auditoria import router as auditoria_router
from simas.api.v1.auth import router as auth_router
from simas.api.v1.entities import router as entities_router
from simas.api.v1.pessoal import router as pessoal_router
from simas.api.v1.reports import router as reports_router
from simas.core.config import settings
from simas.core.errors import SimasError
from simas.db.init_db import init_schema, seed_initial_data
from simas.db.session import engine

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("simas")

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="SIMAS - Gestao de pessoal, atendimentos e auditoria",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    init_schema(engine)
    if settings.SEED_ON_STARTUP:
        seed_initial_data()
    if settings.ENV.lower() == "production":
        if settings.SECRET_KEY == "dev-secret-change-me":
            logger.warning("SECRET_KEY esta usando valor padrao em producao.")
        if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            logger.warning("SQLALCHEMY_DATABASE_URI aponta para SQLite em producao.")


@app.exception_handler(SimasError)
async def simas_error_handler(request: Request, exc: SimasError):
    logger.info("erro de negocio path=%s status=%s erro=%s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.get("/api/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router, prefix="/api")
app.include_router(atendimentos_router, prefix="/api")
app.include_router(pessoal_router, prefix="/api")
app.include_router(auditoria_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
# rotas genericas /{entity} por ultimo
app.include_router(entities_router, prefix="/api")
