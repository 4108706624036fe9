import os
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
MAIL_USERNAME = os.getenv("NODEMAILER_USER")
MAIL_PASSWORD = os.getenv("NODEMAILER_PASS")


def send_email(email_address: Optional[str], subject: str, message: str) -> bool:
    """Send a one-paragraph HTML mail. Failures are logged and reported as False, never raised."""
    if not email_address:
        logger.warning("Skipping email %r: no recipient", subject)
        return False
    if not (MAIL_USERNAME and MAIL_PASSWORD):
        logger.warning("Skipping email to %s: mail credentials not configured", email_address)
        return False

    msg = MIMEMultipart()
    msg["From"] = MAIL_USERNAME
    msg["To"] = email_address
    msg["Subject"] = subject
    msg.attach(MIMEText(f"<p>{message}</p>", "html"))

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as server:
            server.starttls()
            server.login(MAIL_USERNAME, MAIL_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", email_address, e)
        return False

    logger.info("Email sent to %s: %s", email_address, subject)
    return True


def send_order_emails(order: dict, order_id: str) -> None:
    customer = order.get("customer") or {}
    send_email(
        customer.get("email"),
        "Order Successful",
        f"You've placed an order successfully. Transaction Id : {order_id}",
    )
    send_email(
        order.get("seller"),
        "Hurray ! , you have an order to process",
        f"Get the plants ready for {customer.get('name')}",
    )
