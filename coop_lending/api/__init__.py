"""
Cooperative Lending API Application Factory
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI

from .loans import router as loans_router
from .members import router as members_router
from .products import router as products_router
from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Cooperative Lending API",
        description="Loan amortization, repayment allocation, penalties and reversals",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Include routers
    app.include_router(members_router, prefix="/members", tags=["Members"])
    app.include_router(products_router, prefix="/products", tags=["Loan Products"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "coop_lending_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, config.log_format, config.log_file)
    uvicorn.run(
        "coop_lending.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        workers=1 if debug else config.api_workers,
        log_level=config.log_level.lower()
    )
