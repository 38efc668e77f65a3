import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from reportmanager.api.datasources import router as datasources_router
from reportmanager.api.exports import router as exports_router
from reportmanager.api.reports import router as reports_router
from reportmanager.container import Container
from reportmanager.exceptions import ConfigurationError, ReportValidationError
from reportmanager.log import configure_logging
from reportmanager.scheduler.processor import schedule_reports_job

logger = logging.getLogger("reportmanager.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = Container()
    app.state.container = container
    settings = container.settings()
    configure_logging(settings.log_level)
    try:
        schedule_reports_job(settings, container.job_queue())
    except Exception:
        logger.exception("Could not bootstrap the scheduled reports job")
    yield
    engine = container.engine()
    await engine.dispose()


app = FastAPI(title="Report Manager", version="0.1.0", lifespan=lifespan)


@app.exception_handler(ReportValidationError)
@app.exception_handler(ConfigurationError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled error on %s %s:\n%s", request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(datasources_router)
app.include_router(reports_router)
app.include_router(exports_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
