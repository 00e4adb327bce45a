"""
app/routers/contact.py - Contact form submission
POST /api/contact: contact rate limit -> validation (all fields) -> processing.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request

from app.core.errors import ValidationFailed
from app.core.logging import utc_timestamp
from app.dependencies import ContactDep, enforce_contact_limit
from app.models import ContactResponse
from app.services.contact import SUCCESS_MESSAGE
from app.services.validation import build_submission, validate_contact

router = APIRouter()


@router.post("", response_model=ContactResponse, dependencies=[Depends(enforce_contact_limit)])
def submit_contact(
    request: Request,
    contact: ContactDep,
    payload: Optional[dict[str, Any]] = Body(None),
) -> ContactResponse:
    payload = payload or {}
    result = validate_contact(payload)
    if not result.ok:
        raise ValidationFailed(result.messages)

    submission = build_submission(
        payload,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    contact.process_submission(submission)

    return ContactResponse(message=SUCCESS_MESSAGE, timestamp=utc_timestamp())
