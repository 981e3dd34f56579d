"""Instance identity for worker and lease ownership."""

import logging
import os
import socket
from uuid import uuid4

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_ID = "taskflow-1"


def detect_instance_id() -> str:
    """
    Derive an identifier that is unique per running process.

    Checks, in order: ``FLY_ALLOC_ID``, a Kubernetes-style ``HOSTNAME``,
    Cloud Run's ``K_REVISION`` (plus a random suffix, revisions are shared by
    replicas), and finally hostname plus a random suffix.
    """
    fly_alloc_id = os.environ.get("FLY_ALLOC_ID")
    if fly_alloc_id:
        return fly_alloc_id

    hostname = os.environ.get("HOSTNAME")
    if hostname and "-" in hostname:
        return hostname

    revision = os.environ.get("K_REVISION")
    if revision:
        return f"{revision}-{str(uuid4())[:8]}"

    instance_id = f"{socket.gethostname()}-{str(uuid4())[:8]}"
    logger.warning(f"No deployment environment detected, using fallback: {instance_id}")
    return instance_id


def resolve_instance_id(configured: str, env: str) -> str:
    """Use the configured id unless it is the shared default.

    Workers in different processes must not share an id: a job's lease is
    checked by owner, so two processes with one id could complete each
    other's jobs.
    """
    if configured and configured != DEFAULT_INSTANCE_ID:
        return configured
    if env in ("staging", "production"):
        detected = detect_instance_id()
        logger.info(f"Instance ID detected: {detected} (env: {env})")
        return detected
    return configured or DEFAULT_INSTANCE_ID
