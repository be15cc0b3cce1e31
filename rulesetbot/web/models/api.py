"""Pydantic models for webhook responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    status: str
    event: str = ""
    delivery_id: Optional[str] = None
    detail: str = ""


class HealthResponse(BaseModel):
    status: str = "healthy"


class InfoResponse(BaseModel):
    name: str
    version: str
    description: str = ""
    webhook_path: str = ""
