"""
Unit Tests for the SMTP mail sender
"""
import pytest

from community_watch.core.config import settings
from community_watch.services import email_service
from community_watch.services.email_service import Attachment, SmtpMailSender


@pytest.fixture
def configured_sender(monkeypatch) -> SmtpMailSender:
    monkeypatch.setattr(settings, "SMTP_USER", "mailer@watch.test")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "hunter2")
    monkeypatch.setattr(settings, "EMAIL_FROM", "")
    return SmtpMailSender()


class TestBuildMessage:

    def test_headers_and_body(self, configured_sender):
        message = configured_sender.build_message(
            ["a@watch.test", "b@watch.test"], "New Report: CW-1234 - theft", "Body text"
        )

        assert message["To"] == "a@watch.test, b@watch.test"
        assert message["Subject"] == "New Report: CW-1234 - theft"
        assert "mailer@watch.test" in message["From"]
        assert message.get_content().strip() == "Body text"

    def test_attachments(self, configured_sender):
        message = configured_sender.build_message(
            ["a@watch.test"],
            "subject",
            "body",
            [Attachment("1-1.jpg", b"jpeg"), Attachment("1-2.bin", b"\x00\x01")],
        )

        parts = list(message.iter_attachments())
        assert [part.get_filename() for part in parts] == ["1-1.jpg", "1-2.bin"]
        assert parts[0].get_content_type() == "image/jpeg"
        assert parts[1].get_content_type() == "application/octet-stream"
        assert parts[0].get_content() == b"jpeg"


class TestSend:

    @pytest.mark.asyncio
    async def test_unconfigured_sender_skips(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_USER", "")

        async def must_not_send(*args, **kwargs):
            raise AssertionError("aiosmtplib.send should not be called")

        monkeypatch.setattr(email_service.aiosmtplib, "send", must_not_send)

        sender = SmtpMailSender()
        assert sender.is_configured is False
        await sender.send(["a@watch.test"], "subject", "body")

    @pytest.mark.asyncio
    async def test_no_recipients(self, configured_sender):
        with pytest.raises(ValueError):
            await configured_sender.send([], "subject", "body")

    @pytest.mark.asyncio
    async def test_sends_to_explicit_recipients(self, configured_sender, monkeypatch):
        calls = []

        async def fake_send(message, **kwargs):
            calls.append((message, kwargs))

        monkeypatch.setattr(email_service.aiosmtplib, "send", fake_send)

        await configured_sender.send(["a@watch.test"], "first", "body")
        await configured_sender.send(["b@watch.test"], "second", "body")

        assert [kwargs["recipients"] for _, kwargs in calls] == [["a@watch.test"], ["b@watch.test"]]
        assert calls[0][1]["username"] == "mailer@watch.test"
        assert calls[0][1]["timeout"] == settings.MAIL_SEND_TIMEOUT

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, configured_sender, monkeypatch):
        async def refuse(message, **kwargs):
            raise email_service.aiosmtplib.SMTPException("connection refused")

        monkeypatch.setattr(email_service.aiosmtplib, "send", refuse)

        with pytest.raises(email_service.aiosmtplib.SMTPException):
            await configured_sender.send(["a@watch.test"], "subject", "body")
