"""Tests for configuration validation, structured logging and mail settings."""

import json
import logging
from types import SimpleNamespace

import pytest

from gymhub.core.config import validate_config
from gymhub.core.logging import JsonFormatter, latency_bucket_ms
from gymhub.features.notifications.mailer import MailerNotConfiguredError, SmtpConfig, SmtpMailer


def make_settings(**overrides):
    defaults = dict(
        CONFIG_STRICT=False,
        DATABASE_URL="sqlite:///gymhub.db",
        JWT_SECRET="secret",
        SMTP_HOST=None,
        SMTP_PORT=None,
        SMTP_USER=None,
        SMTP_PASS=None,
        MAIL_FROM=None,
        EMAIL_HOST=None,
        EMAIL_PORT=None,
        EMAIL_USER=None,
        EMAIL_PASSWORD=None,
        EMAIL_FROM=None,
        SMTP_TIMEOUT_SECONDS=20,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_strict_config_requires_secret():
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        validate_config(strict=True, settings_obj=make_settings(JWT_SECRET=None))


def test_lenient_config_only_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="gymhub"):
        assert validate_config(strict=False, settings_obj=make_settings(DATABASE_URL=None)) is True
    assert any("DATABASE_URL" in r.getMessage() for r in caplog.records)


def test_smtp_settings_fall_back_to_email_keys():
    cfg = SmtpConfig.from_settings(
        make_settings(EMAIL_HOST="mail.example.com", EMAIL_PORT=587, EMAIL_USER="bot@example.com", EMAIL_PASSWORD="pw")
    )
    assert cfg.host == "mail.example.com"
    assert cfg.port == 587
    assert cfg.from_email == "bot@example.com"
    assert cfg.is_configured


def test_smtp_defaults():
    cfg = SmtpConfig.from_settings(make_settings())
    assert (cfg.host, cfg.port) == ("smtp.gmail.com", 465)
    assert cfg.is_configured is False


def test_unconfigured_mailer_refuses_to_send():
    mailer = SmtpMailer(SmtpConfig.from_settings(make_settings()))
    with pytest.raises(MailerNotConfiguredError):
        mailer.send("a@example.com", "Hi", "Body")


def test_json_formatter_includes_event_fields():
    record = logging.LogRecord("gymhub", logging.INFO, __file__, 1, "order.placed", None, None)
    record.request_id = "rid-1"
    record.user_id = "u1"
    record.event_type = "order.placed"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "order.placed"
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "u1"


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(2500) == ">=1000ms"


def test_request_id_in_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="gymhub"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    assert [r for r in caplog.records if getattr(r, "request_id", None) == rid]
