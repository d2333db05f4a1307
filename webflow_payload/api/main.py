"""FastAPI application entry point."""

from fastapi import FastAPI

from .. import __version__
from .routes import migrations

app = FastAPI(
    title="Webflow to Payload Migration API",
    description="Start and monitor Webflow to Payload CMS migrations",
    version=__version__,
)

app.include_router(migrations.router, prefix="/api/migrations", tags=["migrations"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
