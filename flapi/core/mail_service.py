"""Transactional email delivery.

Templates live in ``flapi/templates/emails`` and are rendered with the
application's Jinja2 environment. Development and test environments send
through SMTP; every other environment goes through the Mailjet Send API.
"""
from __future__ import annotations
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Iterable, List, Union

import requests
from flask import render_template

from flapi.config import get_config
from flapi.core.exceptions import ExternalServiceError

MAILJET_API_URL = "https://api.mailjet.com/v{version}/send"
SENDER_NAME = "Flapi Support"
REQUEST_TIMEOUT = 10

logger = logging.getLogger(__name__)


def _as_list(recipients: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(recipients, str):
        return [recipients]
    return list(recipients)


def render_email(template: str, data: dict[str, Any]) -> str:
    return render_template(f"emails/{template}.html", **data)


def send_email(recipients: Union[str, Iterable[str]], template: str, subject: str, data: dict[str, Any]) -> None:
    """Render a template and deliver it to one or more recipients.

    Raises:
        ExternalServiceError: If the Mailjet call fails
        smtplib.SMTPException: If the SMTP relay rejects the message
    """
    cfg = get_config()
    to = _as_list(recipients)
    html = render_email(template, data)

    if cfg.uses_smtp:
        _send_smtp(cfg, to, subject, html)
    else:
        _send_mailjet(cfg, to, subject, html)
    logger.info("Email '%s' sent to %d recipient(s)", template, len(to))


def _send_smtp(cfg, recipients: List[str], subject: str, html: str) -> None:
    try:
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=REQUEST_TIMEOUT) as server:
            if cfg.smtp_username and cfg.smtp_password:
                server.starttls()
                server.login(cfg.smtp_username, cfg.smtp_password)
            for recipient in recipients:
                message = EmailMessage()
                message["From"] = cfg.mail_username
                message["To"] = recipient
                message["Subject"] = subject
                message.set_content("This message requires an HTML capable mail client.")
                message.add_alternative(html, subtype="html")
                server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email through SMTP: %s", exc)
        raise


def _send_mailjet(cfg, recipients: List[str], subject: str, html: str) -> None:
    payload = {
        "Messages": [
            {
                "From": {"Email": cfg.mail_username, "Name": SENDER_NAME},
                "To": [{"Email": email} for email in recipients],
                "Subject": subject,
                "HTMLPart": html,
            }
        ]
    }
    url = MAILJET_API_URL.format(version=cfg.mailjet_api_version)
    try:
        resp = requests.post(
            url,
            json=payload,
            auth=(cfg.mailjet_api_key, cfg.mailjet_api_secret),
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Failed to send email through Mailjet: %s", exc)
        raise ExternalServiceError("mailjet", str(exc)) from exc
    if resp.status_code >= 400:
        logger.error("Mailjet returned %s: %s", resp.status_code, resp.text)
        raise ExternalServiceError("mailjet", resp.text or resp.reason, resp.status_code)
