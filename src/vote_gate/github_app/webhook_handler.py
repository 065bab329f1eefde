"""FastAPI webhook handler for the Vote Gate GitHub App."""

import asyncio
import hmac
import hashlib
import json
import logging
from typing import Optional
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..errors import ConfigurationError
from ..utils.config_file import Settings, load_settings
from ..utils.schema import PullRequestLabelEvent
from .check_store import CheckStore
from .github_client import GitHubClient
from .vote_workflow import VoteWorkflow

logger = logging.getLogger(__name__)

app = FastAPI(title="Vote Gate GitHub App", version=__version__)

# Initialized on first use
settings: Optional[Settings] = None
check_store: Optional[CheckStore] = None
workflow: Optional[VoteWorkflow] = None

WELCOME_TEXT = (
    "Vote Gate is running.\n\n"
    "Point your GitHub App webhook at POST /webhooks/github."
)

HANDLED_ACTIONS = ("labeled", "unlabeled")


def get_settings() -> Settings:
    """Get settings (lazy initialization)."""
    global settings
    if settings is None:
        settings = load_settings()
    return settings


def get_check_store() -> CheckStore:
    """Get check store instance (lazy initialization)."""
    global check_store
    if check_store is None:
        check_store = CheckStore(get_settings().database_path)
    return check_store


def get_workflow() -> VoteWorkflow:
    """Get vote workflow instance (lazy initialization)."""
    global workflow
    if workflow is None:
        config = get_settings()
        workflow = VoteWorkflow(
            github_client=GitHubClient(app_id=config.app_id, private_key=config.private_key),
            check_store=get_check_store(),
            check_name=config.check_name,
            vote_required_label=config.vote_required_label,
            vote_start_label=config.vote_start_label,
            vote_duration_hours=config.vote_duration_hours,
        )
    return workflow


def verify_webhook_signature(
    payload_body: bytes,
    signature_header: Optional[str],
    webhook_secret: Optional[str],
) -> bool:
    """Verify GitHub webhook signature.

    Args:
        payload_body: Raw request body bytes
        signature_header: X-Hub-Signature-256 header value
        webhook_secret: Shared secret configured on the GitHub App

    Returns:
        True if signature is valid
    """
    if not webhook_secret:
        raise ConfigurationError("GITHUB_WEBHOOK_SECRET not configured")

    # GitHub sends signature as "sha256=<signature>"
    if not signature_header or not signature_header.startswith("sha256="):
        return False

    expected_signature = signature_header[len("sha256="):]

    mac = hmac.new(
        webhook_secret.encode("utf-8"),
        msg=payload_body,
        digestmod=hashlib.sha256,
    )
    actual_signature = mac.hexdigest()

    # Constant-time comparison; compare_digest rejects non-ASCII str
    return hmac.compare_digest(
        expected_signature.encode("utf-8", "surrogateescape"),
        actual_signature.encode("ascii"),
    )


@app.get("/", response_class=PlainTextResponse)
async def index():
    """Welcome text."""
    return WELCOME_TEXT


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        Health status and the number of check runs awaiting a vote outcome
    """
    return {
        "status": "healthy",
        "active_checks": await asyncio.to_thread(get_check_store().count_active_checks),
        "version": __version__,
    }


@app.post("/webhooks/github", response_class=PlainTextResponse)
async def handle_webhook(request: Request):
    """Handle GitHub webhook events.

    Raises:
        HTTPException: 401 if signature verification fails, 400 for an
            unreadable payload, 500 if handling the event fails
    """
    signature = request.headers.get("X-Hub-Signature-256")
    event_name = request.headers.get("X-GitHub-Event", "")
    delivery_id = request.headers.get("X-GitHub-Delivery", "")

    # Get raw body for signature verification
    body = await request.body()

    if not verify_webhook_signature(body, signature, get_settings().webhook_secret):
        logger.warning(f"Rejected delivery {delivery_id or '<none>'}: invalid signature")
        raise HTTPException(status_code=401, detail="invalid signature")

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="invalid payload")

    action = payload.get("action") if isinstance(payload, dict) else None
    repo_full_name = ((payload.get("repository") or {}).get("full_name")
                      if isinstance(payload, dict) else None)
    logger.info(
        f"Received event {event_name}.{action} ({delivery_id}) for repo {repo_full_name}"
    )

    if event_name == "pull_request" and action in HANDLED_ACTIONS:
        await handle_pull_request_event(payload, delivery_id)

    return "ok"


async def handle_pull_request_event(payload: dict, delivery_id: str = "") -> None:
    """Handle pull_request labeled/unlabeled events.

    Args:
        payload: Webhook payload
        delivery_id: X-GitHub-Delivery header, for logging
    """
    try:
        event = PullRequestLabelEvent.from_payload(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        await get_workflow().handle_event(event)
    except Exception:
        logger.exception(f"Handling delivery {delivery_id} for {event.repo_full_name} failed")
        raise HTTPException(status_code=500, detail="handler error")


if __name__ == "__main__":
    import uvicorn

    config = get_settings()
    uvicorn.run(app, host=config.host, port=config.port)
