"""FastAPI application setup for ConnectO Discovery."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="ConnectO Discovery")


@app.get("/health")
def health():
    """Liveness check."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
