"""
tests/test_validation.py - Unit tests for the contact validation pipeline
"""
from __future__ import annotations

import pytest

from app.services.validation import build_submission, normalize_email, validate_contact


def test_valid_submission_has_no_errors(valid_contact):
    result = validate_contact(valid_contact)
    assert result.ok
    assert result.messages == []


def test_missing_payload_reports_every_required_field():
    result = validate_contact(None)
    assert result.failed_fields == ["name", "email", "subject", "message"]
    assert result.messages == [
        "Name is required",
        "Email is required",
        "Subject is required",
        "Message is required",
    ]


def test_only_invalid_fields_are_named(valid_contact):
    payload = dict(valid_contact, subject="Hi", email="not-an-email")
    result = validate_contact(payload)
    assert result.failed_fields == ["email", "subject"]
    assert "Invalid email address" in result.messages
    assert "Subject must be between 5 and 200 characters" in result.messages


def test_one_message_per_field(valid_contact):
    # whitespace-only fails "required" and stops that field's chain
    result = validate_contact(dict(valid_contact, name="   "))
    assert result.messages == ["Name is required"]


@pytest.mark.parametrize("name,ok", [
    ("J", False),
    ("Jo", True),
    ("x" * 100, True),
    ("x" * 101, False),
    ("  J  ", False),
])
def test_name_length_bounds_after_trim(valid_contact, name, ok):
    assert validate_contact(dict(valid_contact, name=name)).ok is ok


@pytest.mark.parametrize("message,ok", [
    ("Too short", False),
    ("Long enough", True),
    ("m" * 5000, True),
    ("m" * 5001, False),
])
def test_message_length_bounds(valid_contact, message, ok):
    assert validate_contact(dict(valid_contact, message=message)).ok is ok


def test_subject_upper_bound(valid_contact):
    assert validate_contact(dict(valid_contact, subject="s" * 200)).ok
    assert not validate_contact(dict(valid_contact, subject="s" * 201)).ok


def test_non_string_field_is_rejected(valid_contact):
    result = validate_contact(dict(valid_contact, name=12345))
    assert result.messages == ["Name must be a string"]


def test_recaptcha_token_optional_but_must_be_string(valid_contact):
    assert validate_contact(dict(valid_contact, recaptchaToken="token-abc")).ok
    result = validate_contact(dict(valid_contact, recaptchaToken=42))
    assert result.failed_fields == ["recaptchaToken"]


def test_extra_fields_are_ignored(valid_contact):
    assert validate_contact(dict(valid_contact, company="Acme", budget=1000)).ok


def test_email_with_surrounding_whitespace_validates(valid_contact):
    assert validate_contact(dict(valid_contact, email="  jane.smith@portfolio-mail.com  ")).ok


def test_email_normalization_is_idempotent():
    once = normalize_email(" Jane.Smith@Portfolio-Mail.com ")
    assert once == "jane.smith@portfolio-mail.com"
    assert normalize_email(once) == once
    assert normalize_email(" a@b.com ") == normalize_email("a@b.com")


def test_build_submission_trims_and_normalizes(valid_contact):
    payload = dict(
        valid_contact,
        name="  Jane Smith ",
        email=" JANE.SMITH@portfolio-mail.com ",
        recaptchaToken="tok",
    )
    submission = build_submission(payload, ip_address="10.0.0.1", user_agent="pytest")
    assert submission.name == "Jane Smith"
    assert submission.email == "jane.smith@portfolio-mail.com"
    assert submission.recaptcha_token == "tok"
    assert submission.ip_address == "10.0.0.1"
