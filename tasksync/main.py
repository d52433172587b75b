"""TaskSync: task/reward marketplace with offline-friendly sync."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from slowapi.middleware import SlowAPIMiddleware

from tasksync.api.router import api_router
from tasksync.config import settings
from tasksync.content import render_response
from tasksync.database import close_db, init_db
from tasksync.notifications import notifier
from tasksync.rate_limit import limiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("tasksync")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = settings.database_url
    if not db_url.startswith("sqlite"):
        Path(db_url).parent.mkdir(parents=True, exist_ok=True)
        db_url = f"sqlite+aiosqlite:///{db_url}"
    await init_db(db_url)
    safe_url = re.sub(r"://[^:]+:[^@]+@", "://***:***@", db_url)
    logger.info("Database connected: %s", safe_url)

    if not settings.push_gateway_url:
        logger.info("No push gateway configured; notifications are disabled")

    yield

    await notifier.drain()
    await close_db()
    logger.info("Database closed")


app = FastAPI(
    title="TaskSync",
    description="Paid tasks with bounded answers and incremental sync",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.include_router(api_router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return render_response(
        request,
        {"error": exc.detail},
        status_code=exc.status_code,
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


def main():
    import uvicorn

    uvicorn.run(
        "tasksync.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
