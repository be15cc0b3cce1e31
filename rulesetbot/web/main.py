"""FastAPI application receiving GitHub App webhooks for the ruleset bot.

Endpoints:
- ``POST /api/github/hook``: signed webhook deliveries
- ``GET /health``: liveness probe
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from rulesetbot import __version__
from rulesetbot.config import Config
from rulesetbot.handler import RulesetHandler
from rulesetbot.web.models.api import HealthResponse, InfoResponse
from rulesetbot.web.routers import webhooks


def create_app(config: Config, handler: Optional[RulesetHandler] = None) -> FastAPI:
    """Build the webhook application around *handler* (or one built from *config*)."""
    app = FastAPI(
        title="repo-ruleset-bot",
        description="GitHub App that keeps organization rulesets in line with their definitions.",
        version=__version__,
    )
    app.state.webhook_secret = config.github.app.webhook_secret
    app.state.handler = handler or RulesetHandler.from_config(config)

    # -----------------------------------------------------------------------
    # Include routers
    # -----------------------------------------------------------------------
    app.include_router(webhooks.router)

    # -----------------------------------------------------------------------
    # Root and health-check endpoints
    # -----------------------------------------------------------------------

    @app.get("/", tags=["meta"], response_model=InfoResponse)
    async def root():
        """Return basic service information."""
        return InfoResponse(
            name="repo-ruleset-bot",
            version=__version__,
            description="Organization ruleset reconciliation bot",
            webhook_path=webhooks.WEBHOOK_PATH,
        )

    @app.get("/health", tags=["meta"], response_model=HealthResponse)
    async def health():
        """Health-check endpoint."""
        return HealthResponse()

    return app
