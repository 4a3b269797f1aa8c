import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatclone.api.routes_chat import router as chat_router
from chatclone.api.routes_conversation import router as conversation_router
from chatclone.api.routes_settings import router as settings_router
from chatclone.api.routes_title import router as title_router
from chatclone.errors import ChatCloneError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

__version__ = "0.1.0"


@asynccontextmanager
async def lifespan(app):
    from chatclone.controller import get_controller

    # Conversations are loaded exactly once per process
    controller = get_controller()
    yield
    await controller.wait_for_titles()


app = FastAPI(title="ChatClone Backend", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(ChatCloneError)
async def chatclone_error_handler(request: Request, exc: ChatCloneError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(chat_router)
app.include_router(title_router)
app.include_router(conversation_router)
app.include_router(settings_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8765)
