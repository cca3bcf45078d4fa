"""Floor-plan export FastAPI application"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv()  # Load .env file

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from planexport import __version__
from planexport.config import ExportConfig

from .routes import export, health

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

config = ExportConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    logger.info("Starting floor-plan export API...")
    yield
    logger.info("Shutting down floor-plan export API...")


app = FastAPI(
    title="Floor Plan Export",
    description="Converts floor-plan scenes into binary glTF models",
    version=__version__,
    lifespan=lifespan,
)
app.state.config = config

# CORS middleware for the editor
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(export.router, prefix="/export", tags=["Export"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Floor Plan Export",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


def serve() -> None:
    """Run the API with uvicorn on the configured host and port."""
    settings: ExportConfig = app.state.config
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    serve()
