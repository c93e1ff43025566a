"""
FastAPI application factory.

Builds the credential settings app: the pool, the credential policy and
the email sender are created once in the lifespan and parked on
app.state, where the dependency factories pick them up per request.

Routing:
- /v1/user/settings/...        settings forms (password, email request)
- /user/settings/email/{token} confirmation link target, at the root
  because that is the path mailed to users
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from credlife.adapters.repository.postgres import run_migrations
from credlife.adapters.smtp.console import ConsoleEmailSender
from credlife.api.v1 import link_router
from credlife.api.v1 import router as v1_router
from credlife.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Credential settings API v1 - Change password and request email changes",
    },
    {
        "name": "links",
        "description": "Targets of links sent by email",
    },
]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the application; settings default to the cached environment settings."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        policy = settings.credential_policy()
        logger.info(
            "Credential policy: rate limit %ss, confirmation TTL %ss, links on %s",
            int(policy.rate_limit_window.total_seconds()),
            int(policy.confirmation_ttl.total_seconds()),
            policy.site_domain,
        )

        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        run_migrations(pool)

        app.state.pool = pool
        app.state.policy = policy
        app.state.email_sender = ConsoleEmailSender()

        yield

        pool.close()
        logger.info("Account store pool closed")

    app = FastAPI(
        title="credlife",
        description="Account credential lifecycle API - password and email changes",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.include_router(v1_router, prefix="/v1")
    app.include_router(link_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """Report healthy once the accounts table answers a query."""
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1 FROM accounts LIMIT 1")
        return {"status": "healthy"}

    return app


app = create_app()
