"""FastAPI application: editor API, run-status socket, startup wiring."""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router
from .api.websocket import hub
from .config import settings
from .engine.session import close_session, get_session
from .observability import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_format)
    # Importing the package registers every node handler
    from . import nodes  # noqa: F401
    get_session().subscribe(hub.publish)
    yield
    await close_session()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.websocket("/ws/runs")
async def run_events(websocket: WebSocket):
    await hub.serve(websocket)


if __name__ == "__main__":
    uvicorn.run("textypoflow.main:app", host=settings.host, port=settings.port, reload=settings.debug)
