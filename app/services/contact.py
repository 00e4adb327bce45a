"""
app/services/contact.py - Contact form processing
Verifies the optional reCAPTCHA token and records the submission in the logs.
Storing submissions and emailing them on is left to downstream integrations.
"""
from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from app.config import Settings
from app.core.errors import BadRequest, UpstreamFailure
from app.models import ContactSubmission

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
RECAPTCHA_TIMEOUT_SECONDS = 10.0

SUCCESS_MESSAGE = "Your message has been sent successfully. We will get back to you soon."


class ContactService:
    def __init__(self, settings: Settings, http_client: Optional[httpx.Client] = None):
        self.settings = settings
        self._http = http_client

    def verify_recaptcha(self, token: str, remote_ip: Optional[str] = None) -> bool:
        """
        Verify a reCAPTCHA v3 token with Google.
        Without RECAPTCHA_SECRET_KEY configured every token is accepted (demo mode).
        """
        secret = self.settings.recaptcha_secret_key
        if not secret:
            logger.info("reCAPTCHA verification skipped (demo mode, no secret configured)")
            return True

        form = {"secret": secret, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            if self._http is not None:
                resp = self._http.post(RECAPTCHA_VERIFY_URL, data=form)
            else:
                resp = httpx.post(RECAPTCHA_VERIFY_URL, data=form, timeout=RECAPTCHA_TIMEOUT_SECONDS)
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPError as exc:
            logger.error(f"reCAPTCHA verification request failed: {exc}")
            raise UpstreamFailure("reCAPTCHA verification unavailable") from exc

        score = result.get("score")
        passed = bool(result.get("success")) and (
            score is None or float(score) >= self.settings.recaptcha_min_score
        )
        if not passed:
            logger.warning(
                f"reCAPTCHA rejected: success={result.get('success')} score={score} "
                f"errors={result.get('error-codes')}"
            )
        return passed

    def process_submission(self, submission: ContactSubmission) -> None:
        logger.info(
            f"Processing contact form submission from {submission.name} <{submission.email}> "
            f"subject={submission.subject!r} ip={submission.ip_address}"
        )

        if submission.recaptcha_token:
            if not self.verify_recaptcha(submission.recaptcha_token, submission.ip_address):
                raise BadRequest("reCAPTCHA verification failed")

        logger.info(
            f"Contact form processed for {submission.email} "
            f"(destination: {self.settings.contact_email or 'unset'}, "
            f"user_agent: {submission.user_agent})"
        )
