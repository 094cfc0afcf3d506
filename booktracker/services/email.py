import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, parseaddr

import requests

from booktracker.core.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

PURPOSE_VERIFY = "verify"
PURPOSE_RESET = "reset"


class EmailSender:
    """Delivers one HTML email; returns False instead of raising on failure."""

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        raise NotImplementedError


class SmtpEmailSender(EmailSender):
    def __init__(self, settings: Settings):
        self.host = settings.EMAIL_HOST
        self.port = settings.EMAIL_PORT
        self.user = settings.EMAIL_HOST_USER
        self.password = settings.EMAIL_HOST_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.DEFAULT_FROM_EMAIL
        self.timeout = settings.EMAIL_TIMEOUT_SECONDS

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        """
        Send an HTML email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body of the email
        """
        msg = MIMEMultipart()
        msg['From'] = self.from_email
        msg['To'] = to_email
        msg['Subject'] = subject
        msg['Date'] = formatdate(localtime=True)

        # Attach HTML content
        msg.attach(MIMEText(html_content, 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                sender = parseaddr(self.from_email)[1] or self.user
                server.sendmail(sender, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

        logger.info(f"Email sent to {to_email}")
        return True


class ApiEmailSender(EmailSender):
    """Transactional email provider reached over an HTTP JSON API."""

    def __init__(self, settings: Settings, session: requests.Session = None):
        self.url = settings.EMAIL_API_URL
        self.api_key = settings.EMAIL_API_KEY
        self.from_email = settings.DEFAULT_FROM_EMAIL
        self.timeout = settings.EMAIL_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        payload = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Email API rejected message to {to_email}: {str(e)}")
            return False

        logger.info(f"Email sent to {to_email}")
        return True


class ConsoleEmailSender(EmailSender):
    """Development backend: writes the message to the log instead of sending it."""

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        logger.info(f"[console email] to={to_email} subject={subject!r}\n{html_content}")
        return True


def get_email_sender() -> EmailSender:
    settings = get_settings()
    backend = settings.EMAIL_BACKEND.lower()
    if backend == "smtp":
        return SmtpEmailSender(settings)
    if backend == "api":
        return ApiEmailSender(settings)
    return ConsoleEmailSender()


def create_otp_email(otp: str, expiry_minutes: int = 5, purpose: str = PURPOSE_VERIFY) -> str:
    """
    Create HTML email content for OTP verification
    """
    if purpose == PURPOSE_RESET:
        heading = "Password Reset Verification"
        intro = "You've requested to reset the password for your Book Tracker account."
        outro = "If you didn't request a password reset, please ignore this email."
    else:
        heading = "Verify Your Email"
        intro = "Thanks for signing up for Book Tracker."
        outro = "If you didn't create an account, please ignore this email."

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>{heading}</title>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background-color: #4CAF50; color: white; padding: 10px; text-align: center; }}
            .content {{ padding: 20px; background-color: #f9f9f9; }}
            .code {{ font-size: 24px; font-weight: bold; text-align: center;
                    padding: 15px; background-color: #e9e9e9; margin: 20px 0; letter-spacing: 5px; }}
            .footer {{ font-size: 12px; text-align: center; margin-top: 20px; color: #1f2e6a; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h2>{heading}</h2>
            </div>
            <div class="content">
                <p>Hello,</p>
                <p>{intro}</p>
                <p>Please use the following verification code to continue:</p>

                <div class="code">{otp}</div>

                <p>This code is valid for {expiry_minutes} minutes and can only be used once.</p>
                <p>{outro}</p>
            </div>
            <div class="footer">
                <p>This is an automated message, please do not reply directly to this email.</p>
                <p>&copy; {datetime.now().year} Book Tracker</p>
            </div>
        </div>
    </body>
    </html>
    """
