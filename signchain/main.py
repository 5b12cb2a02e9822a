from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from signchain.backends import Backends, build_backends
from signchain.config import Settings, get_settings
from signchain.errors import SignChainError, signchain_exception_handler, validation_exception_handler
from signchain.routes.contracts import router as contracts_router
from signchain.routes.health import router as health_router
from signchain.routes.ipfs import router as ipfs_router
from signchain.routes.ledger import router as ledger_router
from signchain.routes.version import router as version_router

# ------------------------------------------------------------------------------
# App metadata
# ------------------------------------------------------------------------------

APP_NAME = "SignChain Backend"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Generate contracts with AI, export them to PDF, pin to IPFS and anchor the CID on Algorand."

logger = logging.getLogger("signchain")


# ------------------------------------------------------------------------------
# FastAPI app
# ------------------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None, backends: Optional[Backends] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        description=APP_DESCRIPTION,
    )
    app.state.settings = settings
    # Live vs simulated services are decided here, once
    app.state.backends = backends or build_backends(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SignChainError, signchain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # --------------------------------------------------------------------------
    # Root & favicon
    # --------------------------------------------------------------------------

    @app.get("/")
    def root():
        """
        Simple root endpoint that reports basic info and available top-level routes.
        """
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "routes": [
                "/health",
                "/version",
                "/contracts/generate",
                "/contracts/recover",
                "/contracts/pdf",
                "/contracts/publish",
                "/ipfs/upload",
                "/ledger/prepare",
                "/ledger/submit",
            ],
        }

    @app.get("/favicon.ico")
    def favicon():
        """
        We are not serving a real favicon yet; return 204 so browsers stop nagging.
        """
        return Response(status_code=204)

    # --------------------------------------------------------------------------
    # Routers
    # --------------------------------------------------------------------------

    app.include_router(health_router)
    app.include_router(version_router)
    app.include_router(contracts_router)
    app.include_router(ipfs_router)
    app.include_router(ledger_router)

    logger.info("%s %s started (env=%s)", APP_NAME, APP_VERSION, settings.environment)
    return app


app = create_app()
