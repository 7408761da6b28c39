from loguru import logger
from fastapi import FastAPI

from app._version import __version__
from app.cli import run_server
from app.config import CORS_ALLOW_CREDENTIALS, CORS_ORIGINS
from app.core.lifespan import lifespan
from app.cors import apply_cors_middleware
from app.api.hls import router as hls_router
from app.api.streams import router as streams_router


app = FastAPI(title="CinematicHub Proxy", version=__version__, lifespan=lifespan)
apply_cors_middleware(
    app, origins=CORS_ORIGINS, allow_credentials=CORS_ALLOW_CREDENTIALS
)
app.include_router(hls_router)  # HLS proxy (cached + serverless variant)
app.include_router(streams_router)  # Stream resolution


# Healthcheck endpoint for CI/CD and monitoring
@app.get("/health")
async def healthcheck():
    return {"status": "ok"}


if __name__ == "__main__":
    logger.info("Starting CinematicHub proxy server...")
    run_server(app)
