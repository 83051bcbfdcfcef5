# main.py
import os
import uvicorn
from fastapi import FastAPI
from socialdash.routers.oauth_router import router as oauth_router
from socialdash.routers.connections_router import router as connections_router
from socialdash.infrastructure.database import init_db
from socialdash.middleware.logging import RequestIdMiddleware
import structlog


def configure_structlog():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
    )


configure_structlog()
logger = structlog.get_logger()

app = FastAPI(title="SocialDash Connections")

app.add_middleware(RequestIdMiddleware)

app.include_router(oauth_router)
app.include_router(connections_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("app_startup")


if __name__ == "__main__":
    uvicorn.run("socialdash.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
