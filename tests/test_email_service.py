"""
Tests for email composition and delivery backends
"""

import json
import logging
import smtplib
from datetime import date
from unittest.mock import patch

import httpx
import pytest

from carguard.config import AppConfig
from carguard.models import CarInfo, ServiceType
from carguard.services.email_service import (
    HttpEmailNotifier,
    LogNotifier,
    SmtpNotifier,
    build_notifier,
    compose_reminder_email,
    format_date,
    service_label,
)


class TestCompose:
    def test_subject_and_body(self, car, expiry):
        email = compose_reminder_email(car, ServiceType.CIVIL_LIABILITY, expiry)

        assert email.subject == (
            "🚗 Reminder: Civil liability insurance for Toyota Corolla expires on 20.06.2025"
        )
        assert "Toyota Corolla (2018)" in email.text
        assert "<strong>Civil liability insurance</strong>" in email.html

    def test_days_left_hint(self, car, expiry):
        email = compose_reminder_email(car, ServiceType.TAX, expiry, today=date(2025, 6, 10))
        assert "in 10 days" in email.text

    def test_overdue_wording(self, car, expiry):
        email = compose_reminder_email(car, ServiceType.TAX, expiry, today=date(2025, 6, 25))

        assert "expired on 20.06.2025" in email.subject
        assert "5 days ago" in email.text

    def test_expires_today(self, car, expiry):
        email = compose_reminder_email(car, ServiceType.TAX, expiry, today=expiry)
        assert "expires today" in email.text

    def test_html_is_escaped(self, expiry):
        car = CarInfo(id=1, user_id=1, brand="<b>Evil</b>", model="Car", year=2000)
        email = compose_reminder_email(car, ServiceType.TAX, expiry)
        assert "<b>Evil</b>" not in email.html
        assert "&lt;b&gt;Evil&lt;/b&gt;" in email.html

    def test_helpers(self):
        assert format_date(date(2025, 1, 5)) == "05.01.2025"
        assert service_label("fire_extinguisher") == "Fire extinguisher check"
        assert service_label("mystery") == "mystery"


class TestLogNotifier:
    @pytest.mark.asyncio
    async def test_always_succeeds(self, car, expiry):
        assert await LogNotifier().send("a@b.c", car, ServiceType.TAX, expiry) is True

    @pytest.mark.asyncio
    async def test_uses_given_reference_date(self, car, expiry, caplog):
        with caplog.at_level(logging.DEBUG, logger="carguard.services.email_service"):
            await LogNotifier().send(
                "a@b.c", car, ServiceType.TAX, expiry, today=date(2025, 6, 1)
            )

        assert "in 19 days" in caplog.text


class TestSmtpNotifier:
    def make(self, **kwargs):
        params = dict(host="smtp.example.com", port=587, sender="noreply@example.com")
        params.update(kwargs)
        return SmtpNotifier(**params)

    def test_build_message_with_reference_date(self, car, expiry):
        message = self.make().build_message(
            "to@example.com", car, ServiceType.TAX, expiry, today=date(2025, 6, 10)
        )
        assert "in 10 days" in message.get_body(preferencelist=("plain",)).get_content()

    def test_build_message(self, car, expiry):
        message = self.make().build_message("to@example.com", car, ServiceType.CASCO, expiry)

        assert message["To"] == "to@example.com"
        assert message["From"] == "noreply@example.com"
        assert "Casco insurance" in message["Subject"]
        assert message.is_multipart()

    @pytest.mark.asyncio
    async def test_send_with_starttls_and_login(self, car, expiry):
        notifier = self.make(username="user", password="secret")

        with patch("carguard.services.email_service.smtplib.SMTP") as MockSMTP:
            smtp = MockSMTP.return_value
            ok = await notifier.send("to@example.com", car, ServiceType.TAX, expiry)

        assert ok is True
        MockSMTP.assert_called_once_with("smtp.example.com", 587, timeout=10)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "secret")
        smtp.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_over_ssl_without_login(self, car, expiry):
        notifier = self.make(port=465, use_ssl=True)

        with patch("carguard.services.email_service.smtplib.SMTP_SSL") as MockSSL:
            smtp = MockSSL.return_value
            ok = await notifier.send("to@example.com", car, ServiceType.TAX, expiry)

        assert ok is True
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_smtp_error_reports_failure(self, car, expiry):
        notifier = self.make()

        with patch("carguard.services.email_service.smtplib.SMTP") as MockSMTP:
            smtp = MockSMTP.return_value
            smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
            ok = await notifier.send("to@example.com", car, ServiceType.TAX, expiry)

        assert ok is False

    @pytest.mark.asyncio
    async def test_connection_error_reports_failure(self, car, expiry):
        notifier = self.make()

        with patch(
            "carguard.services.email_service.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            ok = await notifier.send("to@example.com", car, ServiceType.TAX, expiry)

        assert ok is False


class TestHttpEmailNotifier:
    def make(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpEmailNotifier(
            api_url="https://mail.example.com/emails",
            api_key="key-123",
            sender="noreply@example.com",
            client=client,
        )

    @pytest.mark.asyncio
    async def test_posts_payload(self, car, expiry):
        captured = {}

        def handler(request):
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "msg_1"})

        notifier = self.make(handler)
        ok = await notifier.send("to@example.com", car, ServiceType.INSPECTION, expiry)
        await notifier.close()

        assert ok is True
        assert captured["auth"] == "Bearer key-123"
        assert captured["body"]["to"] == ["to@example.com"]
        assert captured["body"]["from"] == "noreply@example.com"
        assert "Technical inspection" in captured["body"]["subject"]

    @pytest.mark.asyncio
    async def test_days_left_follows_reference_date(self, car, expiry):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(202)

        notifier = self.make(handler)
        await notifier.send(
            "to@example.com", car, ServiceType.TAX, expiry, today=date(2025, 6, 25)
        )

        assert "expired on 20.06.2025" in captured["body"]["subject"]
        assert "5 days ago" in captured["body"]["text"]

    @pytest.mark.asyncio
    async def test_error_status_is_failure(self, car, expiry):
        notifier = self.make(lambda request: httpx.Response(422, text="invalid recipient"))
        assert await notifier.send("bad", car, ServiceType.TAX, expiry) is False

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self, car, expiry):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        notifier = self.make(handler)
        assert await notifier.send("to@example.com", car, ServiceType.TAX, expiry) is False

    @pytest.mark.asyncio
    async def test_connect_error_is_failure(self, car, expiry):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        notifier = self.make(handler)
        assert await notifier.send("to@example.com", car, ServiceType.TAX, expiry) is False


class TestBuildNotifier:
    def test_log_backend(self):
        config = AppConfig(_env_file=None, email_backend="log")
        assert isinstance(build_notifier(config), LogNotifier)

    def test_smtp_backend(self):
        config = AppConfig(
            _env_file=None, email_backend="smtp", smtp_host="mail.local", smtp_port=2525
        )
        notifier = build_notifier(config)

        assert isinstance(notifier, SmtpNotifier)
        assert notifier.host == "mail.local"
        assert notifier.port == 2525

    def test_http_backend(self):
        config = AppConfig(
            _env_file=None,
            email_backend="http",
            email_api_url="https://mail.example.com/emails",
            email_api_key="k",
        )
        notifier = build_notifier(config)

        assert isinstance(notifier, HttpEmailNotifier)
        assert notifier.api_url == "https://mail.example.com/emails"
