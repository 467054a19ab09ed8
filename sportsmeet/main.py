import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sportsmeet.core.config import settings
from sportsmeet.core.errors import ServiceError
from sportsmeet.core.logging_config import configure_logging
from sportsmeet.database.db import init_db
from sportsmeet.realtime.gateway import create_gateway
from sportsmeet.realtime.router import NotificationRouter
from sportsmeet.routes import events, news, users

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    notifications = NotificationRouter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        logger.info("%s %s started", settings.app_name, settings.app_version)
        yield
        notifications.close()

    app = FastAPI(title="SportsMeet API", version=settings.app_version, lifespan=lifespan)
    app.state.notifications = notifications
    app.state.gateway = create_gateway(notifications)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})

    @app.get("/health", tags=["meta"])
    def health():
        return {"ok": True, "env": settings.env, "version": settings.app_version}

    # Include the routers
    app.include_router(events.router)
    app.include_router(users.router)
    app.include_router(news.router)

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


app = create_app()

# Socket.IO answers on /socket.io; everything else goes to the API
asgi_app = socketio.ASGIApp(app.state.gateway.sio, other_asgi_app=app)


def run() -> None:
    configure_logging()
    import uvicorn

    uvicorn.run(
        "sportsmeet.main:asgi_app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    run()
