import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bundle_wizard.application import WizardService
from bundle_wizard.core.settings import Settings, load_settings
from bundle_wizard.infrastructure import ConverterClient
from bundle_wizard.routes import review, upload, wizard


def create_app(
    settings: Settings | None = None,
    *,
    client: ConverterClient | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="NHCX Bundle Wizard API", version="0.1.0")

    if client is None:
        client = ConverterClient(settings.converter_api_base, timeout=settings.converter_timeout)
    app.state.wizard = WizardService(client, timeout=settings.converter_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(upload.router, prefix="/api")
    app.include_router(wizard.router, prefix="/api")
    app.include_router(review.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "NHCX Bundle Wizard API",
                "docs": "/docs",
                "state": "/api/wizard",
                "converter": settings.converter_api_base,
            }
        )

    return app


app = create_app()
