from fastapi import FastAPI
import logging

from admission_policy.api.middleware import configure_exception_handlers
from admission_policy.api.routes import create_api_router
from admission_policy.config import Config
from admission_policy.services.policy_engine import PolicyEngine

logger = logging.getLogger(__name__)


def create_app(config: Config = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or Config()
    engine = PolicyEngine(disabled_rules=config.disabled_rules, max_workers=config.max_workers)
    logger.info(
        f"Loaded {len(engine.active_rules)} policy rules "
        f"({len(engine.disabled_rules)} disabled), mode={config.mode}"
    )

    app = FastAPI(title="Kure Admission Policy", version="1.0.0")
    configure_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    app.include_router(create_api_router(engine, mode=config.mode))
    return app
