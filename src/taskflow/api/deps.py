"""API dependencies."""

import logging
import secrets

from fastapi import Header, HTTPException, Request

from taskflow.config import Environment, settings
from taskflow.services import Services

logger = logging.getLogger("taskflow.api")

DEV_USER_ID = "dev-user"


def get_services(request: Request) -> Services:
    """Service handles built by the application lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return services


async def get_user_id(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> str:
    """
    Acting user, as asserted by the gateway in front of this service.

    Rules and events are scoped to this id.
    """
    if x_user_id:
        return x_user_id

    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return DEV_USER_ID

    raise HTTPException(status_code=401, detail="Missing user ID")


async def verify_api_key(
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> str:
    """
    Verify the shared API token.

    Fails closed: without a configured key and outside explicit insecure
    dev mode every request is rejected. Returns the auth mode used.
    """
    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return "insecure_dev"

    api_key = None
    if authorization and authorization.startswith("Bearer "):
        api_key = authorization[7:]
    elif x_api_key:
        api_key = x_api_key

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization. Use Authorization: Bearer <key> or X-API-Key header",
        )

    if settings.api_key:
        if secrets.compare_digest(api_key, settings.api_key):
            return "api_key"
        raise HTTPException(status_code=401, detail="Invalid API key")

    logger.error("SECURITY VIOLATION: No API key configured. Set TASKFLOW_API_KEY.")
    raise HTTPException(
        status_code=503,
        detail="Server misconfigured: authentication not properly initialized",
    )


def validate_auth_config() -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set TASKFLOW_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if not settings.allow_insecure_dev and not settings.api_key:
        raise RuntimeError(
            "SECURITY ERROR: no TASKFLOW_API_KEY configured. Set an API key, or "
            "TASKFLOW_ALLOW_INSECURE_DEV=true for local development."
        )

    if settings.allow_insecure_dev:
        logger.warning(
            "=" * 80 + "\n"
            "WARNING: Running in INSECURE DEV MODE\n"
            "  - Authentication is DISABLED\n"
            "  - Requests without X-User-ID act as the dev user\n"
            "  - Set TASKFLOW_ALLOW_INSECURE_DEV=false for any deployment\n"
            + "=" * 80
        )
    else:
        logger.info(f"Authentication enabled: shared API key for {settings.env.value}")
