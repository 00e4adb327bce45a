"""
app/services/validation.py - Contact submission validation pipeline
Each field runs its own ordered rule chain, stopping at that field's first failure.
Fields are independent, so every invalid field is reported in one response.
Pure: no I/O, no logging.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from email_validator import EmailNotValidError, validate_email

from app.models import ContactSubmission, FieldError, ValidationResult

# A rule returns an error message, or None when the value passes
Rule = Callable[[Any], Optional[str]]


def required(message: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        if value is None:
            return message
        if isinstance(value, str) and not value.strip():
            return message
        return None
    return rule


def is_string(message: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        return None if isinstance(value, str) else message
    return rule


def length_between(min_len: int, max_len: int, message: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        length = len(str(value).strip())
        return None if min_len <= length <= max_len else message
    return rule


def email_address(message: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        try:
            validate_email(str(value).strip(), check_deliverability=False)
        except EmailNotValidError:
            return message
        return None
    return rule


@dataclass(frozen=True)
class FieldSpec:
    field: str
    rules: tuple[Rule, ...]
    optional: bool = False


CONTACT_RULES: tuple[FieldSpec, ...] = (
    FieldSpec("name", (
        required("Name is required"),
        is_string("Name must be a string"),
        length_between(2, 100, "Name must be between 2 and 100 characters"),
    )),
    FieldSpec("email", (
        required("Email is required"),
        is_string("Email must be a string"),
        email_address("Invalid email address"),
    )),
    FieldSpec("subject", (
        required("Subject is required"),
        is_string("Subject must be a string"),
        length_between(5, 200, "Subject must be between 5 and 200 characters"),
    )),
    FieldSpec("message", (
        required("Message is required"),
        is_string("Message must be a string"),
        length_between(10, 5000, "Message must be between 10 and 5000 characters"),
    )),
    FieldSpec("recaptchaToken", (
        is_string("reCAPTCHA token must be a string"),
    ), optional=True),
    FieldSpec("phone", (
        is_string("Phone must be a string"),
    ), optional=True),
)


def run_rules(payload: dict[str, Any], specs: tuple[FieldSpec, ...]) -> ValidationResult:
    """Apply each field's rule chain; collect the first failure per field."""
    errors: list[FieldError] = []
    for spec in specs:
        value = payload.get(spec.field)
        if spec.optional and value is None:
            continue
        for rule in spec.rules:
            message = rule(value)
            if message is not None:
                errors.append(FieldError(field=spec.field, message=message))
                break
    return ValidationResult(errors=errors)


def validate_contact(payload: Optional[dict[str, Any]]) -> ValidationResult:
    return run_rules(payload or {}, CONTACT_RULES)


def normalize_email(email: str) -> str:
    """Whitespace stripped, lowercased. Idempotent."""
    return "".join(email.split()).lower()


def build_submission(
    payload: dict[str, Any],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ContactSubmission:
    """Normalized submission from a payload that already passed validate_contact()."""
    phone = payload.get("phone")
    return ContactSubmission(
        name=payload["name"].strip(),
        email=normalize_email(payload["email"]),
        subject=payload["subject"].strip(),
        message=payload["message"].strip(),
        recaptcha_token=payload.get("recaptchaToken"),
        phone=phone.strip() if isinstance(phone, str) else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
