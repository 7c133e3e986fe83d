"""SMS delivery through the Textbee Android gateway (https://github.com/vernu/textbee)."""
from __future__ import annotations
import logging

import requests

from flapi.config import get_config
from flapi.core.exceptions import ExternalServiceError

TEXTBEE_API_URL = "https://api.textbee.dev/api/v1/gateway/devices/{device_id}/send-sms"
REQUEST_TIMEOUT = 10

logger = logging.getLogger(__name__)


def send_sms(number: str, message: str) -> None:
    """Send a text message to a single phone number.

    Raises:
        ExternalServiceError: If the gateway is unreachable or refuses the message
    """
    cfg = get_config()
    url = TEXTBEE_API_URL.format(device_id=cfg.textbee_device_id)
    try:
        resp = requests.post(
            url,
            json={"recipients": [number], "message": message},
            headers={"x-api-key": cfg.textbee_api_key},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Textbee call failed: %s", exc)
        raise ExternalServiceError("textbee", str(exc)) from exc
    if resp.status_code >= 400:
        logger.error("Textbee returned %s: %s", resp.status_code, resp.text)
        raise ExternalServiceError("textbee", resp.text or resp.reason, resp.status_code)
    logger.info("SMS sent through device %s", cfg.textbee_device_id)
