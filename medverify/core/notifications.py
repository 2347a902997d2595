"""
Email notifications for OTP codes and verification outcomes.

Senders never raise: every failure is logged and reported as ``False`` so that
callers can treat delivery as fire-and-forget.
"""
import html
import logging
import smtplib
import socket
import ssl
import time
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

from fastapi import BackgroundTasks

from ..config import settings

# Set up logging
logger = logging.getLogger(__name__)

# Connection timeout settings
SMTP_TIMEOUT = 30
MAX_RETRIES = 3
RETRY_DELAY = 2

VERIFICATION_APPROVED = "approved"
VERIFICATION_REJECTED = "rejected"

def _wrap_html(title: str, body: str) -> str:
    return f"""
    <html>
        <head>
            <title>{title}</title>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .content {{ padding: 20px; border: 1px solid #ddd; }}
                .code {{ font-size: 32px; letter-spacing: 8px; text-align: center;
                        margin: 20px 0; padding: 20px; background-color: #f5f5f5; }}
                .footer {{ text-align: center; margin-top: 20px; font-size: 12px; color: #777; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="content">{body}</div>
                <div class="footer">&copy; {datetime.now().year} MedVerify. All rights reserved.</div>
            </div>
        </body>
    </html>
    """

def _build_message(to: str, subject: str, text: str, html_body: str) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.mail_from or settings.mail_username
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html_body, "html"))
    return msg

def _deliver(msg: MIMEMultipart) -> bool:
    """
    Send a message over SMTP with retry logic.

    Authentication and recipient errors are not retried.

    Returns:
        bool: True if the server accepted the message
    """
    recipient = msg["To"]
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            with smtplib.SMTP(settings.mail_server, settings.mail_port, timeout=SMTP_TIMEOUT) as server:
                server.ehlo()
                if settings.mail_starttls:
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                if settings.mail_username and settings.mail_password:
                    server.login(settings.mail_username, settings.mail_password)
                server.send_message(msg)
            logger.info(f"Email '{msg['Subject']}' sent to {recipient} on attempt {attempt}")
            return True
        except (smtplib.SMTPAuthenticationError, smtplib.SMTPRecipientsRefused) as e:
            logger.error(f"Email to {recipient} rejected: {str(e)}")
            return False
        except (smtplib.SMTPException, socket.timeout, OSError) as e:
            logger.warning(f"Email send attempt {attempt}/{MAX_RETRIES} to {recipient} failed: {str(e)}")
            if attempt < MAX_RETRIES:
                time.sleep(RETRY_DELAY)

    logger.error(f"Failed to send email to {recipient} after {MAX_RETRIES} attempts")
    return False

def send_otp_email(email: str, code: str) -> bool:
    """
    Send a password reset OTP.

    When SMTP is not configured the code is written to the DEBUG log instead
    (development mode) and the send counts as successful.

    Args:
        email: Recipient address
        code: The one-time passcode

    Returns:
        bool: True if the message was handed off
    """
    if not settings.smtp_configured:
        logger.debug(f"SMTP not configured; OTP for {email}: {code}")
        return True

    try:
        minutes = settings.otp_expire_minutes
        text = f"Your OTP code is: {code}\n\nThis code will expire in {minutes} minutes."
        html_body = _wrap_html(
            "Password Reset",
            f"""
            <h2>Password Reset</h2>
            <p>Your OTP code is:</p>
            <div class="code">{code}</div>
            <p>This code will expire in {minutes} minutes.</p>
            <p>If you did not request a password reset, please ignore this email.</p>
            """
        )
        return _deliver(_build_message(email, "Password Reset OTP", text, html_body))
    except Exception as e:
        logger.error(f"Failed to send OTP email to {email}: {str(e)}")
        return False

def send_verification_status_email(
    email: str,
    status: str,
    full_name: str,
    reason: Optional[str] = None
) -> bool:
    """
    Tell a medical professional the outcome of their verification review.

    Args:
        email: Recipient address
        status: ``"approved"`` or ``"rejected"``
        full_name: Recipient name for the greeting
        reason: Rejection reason, included for rejections

    Returns:
        bool: True if the message was handed off
    """
    if not settings.smtp_configured:
        logger.info(f"SMTP not configured; verification {status} notice for {email}")
        return True

    try:
        safe_name = html.escape(full_name)
        safe_reason = html.escape(reason or "Not specified")
        if status == VERIFICATION_APPROVED:
            subject = "Your account has been verified"
            text = (
                f"Hello {full_name},\n\nYour identity verification has been approved. "
                "You now have full access to your account."
            )
            body = f"""
            <h2>Verification Approved</h2>
            <p>Hello {safe_name},</p>
            <p>Your identity verification has been approved. You now have full access to your account.</p>
            """
        else:
            subject = "Your verification needs attention"
            text = (
                f"Hello {full_name},\n\nYour identity verification was not approved.\n"
                f"Reason: {reason or 'Not specified'}\n\n"
                "You can resubmit your documents from the app."
            )
            body = f"""
            <h2>Verification Not Approved</h2>
            <p>Hello {safe_name},</p>
            <p>Your identity verification was not approved.</p>
            <p><strong>Reason:</strong> {safe_reason}</p>
            <p>You can resubmit your documents from the app.</p>
            """
        return _deliver(_build_message(email, subject, text, _wrap_html(subject, body)))
    except Exception as e:
        logger.error(f"Failed to send verification status email to {email}: {str(e)}")
        return False

def dispatch_notification(
    background_tasks: Optional[BackgroundTasks],
    sender: Callable[..., bool],
    *args,
    **kwargs
) -> None:
    """
    Run a sender after the current request, or immediately when there is none.

    The outcome is never propagated; the state change that triggered the
    notification is already committed.
    """
    if background_tasks is not None:
        background_tasks.add_task(sender, *args, **kwargs)
        return
    try:
        if not sender(*args, **kwargs):
            logger.warning(f"Notification {getattr(sender, '__name__', sender)} was not delivered")
    except Exception as e:
        logger.error(f"Notification {getattr(sender, '__name__', sender)} failed: {str(e)}")
