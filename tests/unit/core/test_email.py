"""
Tests for magic link delivery in csr26_api/core/email.py
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from csr26_api.core.email import EmailService


def smtp_service() -> EmailService:
    return EmailService(
        smtp_host="smtp.example.com",
        smtp_user="mailer",
        smtp_password="secret",
        frontend_url="https://app.csr26.test/",
        development=False,
    )


class TestMagicLinkUrls:
    def test_audiences(self):
        service = EmailService(frontend_url="https://app.csr26.test/")

        assert service.build_magic_link_url("abc") == "https://app.csr26.test/verify/abc"
        assert (
            service.build_magic_link_url("abc", "partner")
            == "https://app.csr26.test/partner/verify/abc"
        )


class TestSendMagicLink:
    @pytest.mark.asyncio
    async def test_unconfigured_production_hides_url(self):
        service = EmailService(development=False)

        delivery = await service.send_magic_link("a@example.com", "abc")

        assert delivery.sent is False
        assert delivery.magic_link_url is None

    @pytest.mark.asyncio
    async def test_sends_over_starttls(self):
        service = smtp_service()
        with patch("csr26_api.core.email.smtplib.SMTP") as smtp_cls:
            server = MagicMock()
            smtp_cls.return_value = server
            server.__enter__.return_value = server

            delivery = await service.send_magic_link("a@example.com", "abc", "Ada")

        assert delivery.sent is True
        assert delivery.message == "Magic link sent to email"
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        assert server.sendmail.call_args[0][1] == "a@example.com"

    @pytest.mark.asyncio
    async def test_smtp_failure_falls_back_to_log(self):
        service = smtp_service()
        with patch(
            "csr26_api.core.email.smtplib.SMTP",
            side_effect=smtplib.SMTPConnectError(421, "unavailable"),
        ):
            delivery = await service.send_magic_link("a@example.com", "abc")

        assert delivery.sent is False
        assert "check server logs" in delivery.message
