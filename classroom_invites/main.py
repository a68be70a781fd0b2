import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from classroom_invites.config import settings
from classroom_invites.database import engine
from classroom_invites.errors import InviteError
from classroom_invites.events import create_event_bus
from classroom_invites.routers import auth, classes, invites, users

LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    },
    "root": {"handlers": ["console"], "level": settings.log_level},
}

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.config.dictConfig(LOG_CONFIG)


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title="Classroom Invites API")
    application.state.events = create_event_bus()

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(InviteError)
    async def handle_invite_error(request: Request, exc: InviteError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )

    application.include_router(auth.router)
    application.include_router(users.router)
    application.include_router(classes.router)
    application.include_router(invites.router)

    @application.get("/health")
    def health():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database health check failed")
            return JSONResponse(status_code=503, content={"status": "unhealthy"})
        return {"status": "healthy"}

    return application


app = create_app()
