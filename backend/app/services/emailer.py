import logging
import smtplib
from email.message import EmailMessage

from ..config import FRONTEND_URL, PASSWORD_RESET_EXPIRE_MINUTES, SMTP_FROM, SMTP_HOST, SMTP_PASS, SMTP_PORT, SMTP_TLS, SMTP_USER

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(SMTP_HOST and SMTP_USER and SMTP_PASS and SMTP_FROM)


def send_password_reset_email(*, to_email: str, name: str | None, token: str) -> None:
    """
    Sends the password reset link over SMTP.

    Env vars:
      SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM, SMTP_TLS, FRONTEND_URL
    """
    if not smtp_configured():
        raise RuntimeError("SMTP is not configured (missing SMTP_HOST/SMTP_USER/SMTP_PASS/SMTP_FROM).")

    link = f"{FRONTEND_URL}/reset-password?token={token}"
    lines: list[str] = []
    lines.append(f"Hi {(name or 'there').strip()},")
    lines.append("")
    lines.append("We received a request to reset the password for your account.")
    lines.append(f"Use the link below within {PASSWORD_RESET_EXPIRE_MINUTES} minutes:")
    lines.append("")
    lines.append(link)
    lines.append("")
    lines.append("If you did not ask for this, you can ignore this email.")

    msg = EmailMessage()
    msg["Subject"] = "Reset your password"
    msg["From"] = SMTP_FROM
    msg["To"] = to_email
    msg.set_content("\n".join(lines))

    logger.info("Sending password reset email to %s via %s:%s (TLS=%s)", to_email, SMTP_HOST, SMTP_PORT, SMTP_TLS)
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=15) as smtp:
        smtp.ehlo()
        if SMTP_TLS:
            smtp.starttls()
            smtp.ehlo()
        smtp.login(SMTP_USER, SMTP_PASS)
        smtp.send_message(msg)
