import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class EmailSender:
    """Sends HTML email over SMTP. Failures come back as results, never raised."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        from_email: str = "noreply@example.com",
        from_name: str = "",
        timeout: int = 15,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "EmailSender":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            use_ssl=settings.SMTP_USE_SSL,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    def _create_smtp_client(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send(self, to_email: str, subject: str, body_html: str, body_text: Optional[str] = None) -> EmailResult:
        if not self.host:
            logger.warning("SMTP_HOST not configured; email to %s not sent", to_email)
            return EmailResult(success=False, error="Email delivery is not configured")

        message_id = make_msgid()
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        msg["To"] = to_email
        msg["Message-ID"] = message_id

        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        try:
            server = self._create_smtp_client()
            try:
                if self.use_tls and not self.use_ssl:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.from_email, to_email, msg.as_string())
            finally:
                server.quit()
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("SMTP authentication failed for %s: %s", to_email, exc)
            return EmailResult(success=False, error="SMTP authentication failed")
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to_email, exc)
            return EmailResult(success=False, error=str(exc))

        logger.info("Email '%s' sent to %s", subject, to_email)
        return EmailResult(success=True, message_id=message_id)
