"""Courier FastAPI application.

Commands are processed synchronously per request inside the courier domain
context.

Usage:
    uvicorn courier.app:create_app --factory --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courier.domain import courier


def create_app() -> FastAPI:
    """Initialize the domain and build the application.

    PROTEAN_ENV selects the config overlay:
      - unset/"test" -> event_processing = "sync" (projectors fire in the UoW)
      - "production" -> event_processing = "async" (projectors fire via the Engine)
    """
    courier.init()

    from courier.api import register_error_handlers, routers

    app = FastAPI(
        title="Courier API",
        description="Shipment lifecycle, tracking, exceptions and invoicing",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the courier domain context for each request."""
        with courier.domain_context():
            return await call_next(request)

    register_error_handlers(app)
    for router in routers:
        app.include_router(router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": courier.name})

    return app
