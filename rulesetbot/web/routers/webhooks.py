"""Webhook router -- receives GitHub deliveries and hands them to the handler."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from rulesetbot.errors import PayloadError, RulesetBotError
from rulesetbot.handler import RulesetHandler
from rulesetbot.web.middleware.signature import verify_signature
from rulesetbot.web.models.api import WebhookResponse

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/github/hook"

router = APIRouter(tags=["webhooks"])


def get_handler(request: Request) -> RulesetHandler:
    """Return the handler attached to the running application."""
    return request.app.state.handler


@router.post(
    WEBHOOK_PATH,
    response_model=WebhookResponse,
    summary="Receive a GitHub webhook delivery",
)
async def receive_webhook(
    body: bytes = Depends(verify_signature),
    handler: RulesetHandler = Depends(get_handler),
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
):
    """Verify, classify and reconcile one delivery.

    Unhandled event types are acknowledged with ``202`` so GitHub does not
    mark them as failed.
    """
    if not x_github_event:
        raise HTTPException(status_code=400, detail="Missing X-GitHub-Event header")

    if x_github_event == "ping":
        return WebhookResponse(status="pong", event="ping", delivery_id=x_github_delivery)

    if x_github_event not in handler.handles():
        logger.debug("Delivery %s: ignoring %s event", x_github_delivery, x_github_event)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=WebhookResponse(
                status="ignored", event=x_github_event, delivery_id=x_github_delivery
            ).model_dump(),
        )

    try:
        await run_in_threadpool(handler.handle, x_github_event, x_github_delivery or "", body)
    except PayloadError as exc:
        logger.error("Delivery %s: bad %s payload: %s", x_github_delivery, x_github_event, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except RulesetBotError as exc:
        logger.error(
            "Delivery %s: failed to handle %s event: %s", x_github_delivery, x_github_event, exc, exc_info=True
        )
        raise HTTPException(status_code=500, detail=str(exc))

    return WebhookResponse(status="processed", event=x_github_event, delivery_id=x_github_delivery)
