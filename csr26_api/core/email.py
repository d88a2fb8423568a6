import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Literal, Optional

from fastapi.concurrency import run_in_threadpool

from csr26_api.core.settings import settings

logger = logging.getLogger(__name__)

Audience = Literal["user", "partner"]


@dataclass
class MagicLinkDelivery:
    """Outcome of a magic link send attempt."""

    sent: bool
    message: str
    magic_link_url: Optional[str] = None


class EmailService:
    """
    SMTP email service for magic link logins.

    When SMTP is not configured the link is written to the log instead, so
    local development works without a mail server.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_ssl: bool = False,
        from_email: str = "noreply@impactcsr26.it",
        from_name: str = "CSR26 Platform",
        frontend_url: str = "http://localhost:5173",
        link_ttl_minutes: int = 15,
        development: bool = True,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.use_ssl = use_ssl
        self.from_email = from_email
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")
        self.link_ttl_minutes = link_ttl_minutes
        self.development = development

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def build_magic_link_url(self, token: str, audience: Audience = "user") -> str:
        if audience == "partner":
            return f"{self.frontend_url}/partner/verify/{token}"
        return f"{self.frontend_url}/verify/{token}"

    async def send_magic_link(
        self,
        email: str,
        token: str,
        name: Optional[str] = None,
        audience: Audience = "user",
    ) -> MagicLinkDelivery:
        """
        Deliver a magic login link.

        Args:
            email: Recipient address
            token: Magic link token
            name: Optional greeting name
            audience: "user" or "partner", selects the verify URL

        Returns:
            MagicLinkDelivery describing what happened. The URL itself is only
            exposed in development when no SMTP server is configured.
        """
        url = self.build_magic_link_url(token, audience)

        if not self.is_configured:
            logger.info(
                "Email not configured, magic link for %s (%s): %s", email, audience, url
            )
            return MagicLinkDelivery(
                sent=False,
                message="Magic link generated (check server logs)",
                magic_link_url=url if self.development else None,
            )

        subject = (
            "CSR26 Partner Portal Login"
            if audience == "partner"
            else "Login to CSR26 - Your Environmental Portfolio"
        )
        sent = await run_in_threadpool(
            self.send_email,
            email,
            subject,
            self._magic_link_html(name or "", url),
            self._magic_link_text(name or "", url),
        )
        if not sent:
            logger.warning("Fallback, magic link for %s: %s", email, url)
            return MagicLinkDelivery(
                sent=False,
                message="Magic link generated (email delivery issue - check server logs)",
            )
        return MagicLinkDelivery(sent=True, message="Magic link sent to email")

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """Send a multipart email. Returns False instead of raising on SMTP failure."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        if text_content:
            msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            if self.use_ssl:
                server: smtplib.SMTP = smtplib.SMTP_SSL(
                    self.smtp_host or "", self.smtp_port, timeout=10
                )
            else:
                server = smtplib.SMTP(self.smtp_host or "", self.smtp_port, timeout=10)
            with server:
                if not self.use_ssl:
                    server.starttls()
                server.login(self.smtp_user or "", self.smtp_password or "")
                server.sendmail(self.from_email, to_email, msg.as_string())
            logger.info("Email sent to %s", to_email)
            return True
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed, check email credentials")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

    def _magic_link_text(self, name: str, url: str) -> str:
        greeting = f"Hello {name}," if name else "Hello,"
        return (
            f"{greeting}\n\n"
            "You requested to login to your CSR26 account. "
            "Open the link below to access your environmental portfolio:\n\n"
            f"{url}\n\n"
            f"This link will expire in {self.link_ttl_minutes} minutes.\n\n"
            "If you didn't request this login link, you can safely ignore this email.\n\n"
            "---\nCSR26 - Environmental Impact Platform"
        )

    def _magic_link_html(self, name: str, url: str) -> str:
        greeting = f"Hello {name}," if name else "Hello,"
        return f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; background-color: #f5f5f5;">
            <div style="max-width: 600px; margin: 0 auto; background: #ffffff;">
                <div style="background-color: #1e40af; padding: 30px; text-align: center;">
                    <h1 style="color: #ffffff; margin: 0;">CSR26</h1>
                </div>
                <div style="padding: 40px 30px;">
                    <h2>{greeting}</h2>
                    <p>You requested to login to your CSR26 account.</p>
                    <p><a href="{url}" style="display: inline-block; padding: 14px 30px;
                        background-color: #1e40af; color: #ffffff; text-decoration: none;">
                        Login to CSR26</a></p>
                    <p>This link will expire in <strong>{self.link_ttl_minutes} minutes</strong>.</p>
                    <p style="font-size: 12px; color: #9ca3af;">{url}</p>
                </div>
                <div style="padding: 20px 30px; font-size: 12px; color: #9ca3af;">
                    &copy; {datetime.now().year} CSR26 - Environmental Impact Platform
                </div>
            </div>
        </body>
        </html>
        """


email_service = EmailService(
    smtp_host=settings.SMTP_HOST,
    smtp_port=settings.SMTP_PORT,
    smtp_user=settings.SMTP_USER,
    smtp_password=settings.SMTP_PASS,
    use_ssl=settings.SMTP_SECURE,
    from_email=settings.EMAIL_FROM,
    frontend_url=settings.FRONTEND_URL,
    link_ttl_minutes=settings.MAGIC_LINK_TTL_MINUTES,
    development=settings.ENVIRONMENT == "development",
)


def get_email_service() -> EmailService:
    """Email service dependency for FastAPI dependency injection."""
    return email_service
