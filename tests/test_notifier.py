"""
Tests for the SMTP escalation notifier. aiosmtplib.send is patched out.
"""

import aiosmtplib
import pytest

from focusflow.config import Config
from focusflow.errors import UpstreamFailure
from focusflow.notify.email import EmailNotifier


@pytest.fixture
def mail_config(tmp_path):
    return Config(
        data_dir=tmp_path,
        smtp_host="smtp.example.com",
        smtp_port=2525,
        smtp_user="robot",
        smtp_password="secret",
        email_from="focus@example.com",
    )


async def test_unconfigured_skips_delivery(tmp_path, monkeypatch):
    async def boom(*args, **kwargs):
        raise AssertionError("should not send")

    monkeypatch.setattr(aiosmtplib, "send", boom)
    notifier = EmailNotifier(Config(data_dir=tmp_path))
    assert notifier.configured is False
    assert await notifier.send("a@example.com", "s", "t", "<p>t</p>") is False


async def test_send_builds_multipart_message(mail_config, monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))
        return ({}, "OK")

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    notifier = EmailNotifier(mail_config)

    assert await notifier.send("bob@example.com", "Break over", "plain body", "<p>html body</p>")

    message, kwargs = calls[0]
    assert message["To"] == "bob@example.com"
    assert message["From"] == "focus@example.com"
    assert message["Subject"] == "Break over"
    assert message.get_body(("plain",)).get_content().strip() == "plain body"
    assert "html body" in message.get_body(("html",)).get_content()
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["port"] == 2525
    assert kwargs["username"] == "robot"


@pytest.mark.parametrize("error", [aiosmtplib.SMTPException("rejected"), ConnectionRefusedError()])
async def test_transport_errors_become_upstream_failure(mail_config, monkeypatch, error):
    async def failing_send(message, **kwargs):
        raise error

    monkeypatch.setattr(aiosmtplib, "send", failing_send)
    notifier = EmailNotifier(mail_config)

    with pytest.raises(UpstreamFailure) as info:
        await notifier.send("bob@example.com", "s", "t", "<p>t</p>")
    assert info.value.status_code == 502
