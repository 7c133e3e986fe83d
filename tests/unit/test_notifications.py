"""Email and SMS delivery tests."""
from unittest.mock import MagicMock

import pytest
import requests

from flapi.core import mail_service
from flapi.core.exceptions import ExternalServiceError
from flapi.core.mail_service import render_email, send_email
from flapi.core.sms_service import send_sms
from tests.conftest import StubResponse, make_config

TEMPLATE_DATA = {"username": "Alice", "code": 123456, "redirect_uri": "https://app.flapi.org/account/validate?code=123456"}


@pytest.fixture()
def smtp(monkeypatch):
    server = MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = server
    monkeypatch.setattr(mail_service.smtplib, "SMTP", factory)
    return factory, server


def test_welcome_template_renders_code_and_link(app):
    html = render_email("welcome", TEMPLATE_DATA)
    assert "Alice" in html
    assert "123456" in html
    assert "https://app.flapi.org/account/validate?code=123456" in html


def test_new_code_template(app):
    assert "654321" in render_email("new_code", {**TEMPLATE_DATA, "code": 654321})


def test_smtp_sends_one_message_per_recipient(app, smtp):
    factory, server = smtp

    send_email(["a@example.com", "b@example.com"], "welcome", "Welcome", TEMPLATE_DATA)

    factory.assert_called_once_with("localhost", 587, timeout=mail_service.REQUEST_TIMEOUT)
    server.starttls.assert_not_called()
    sent = [call.args[0] for call in server.send_message.call_args_list]
    assert [message["To"] for message in sent] == ["a@example.com", "b@example.com"]
    assert all(message["From"] == "support@flapi.org" for message in sent)
    assert sent[0]["Subject"] == "Welcome"


@pytest.mark.parametrize("cfg", [make_config(smtp_username="relay", smtp_password="relay-pw")])
def test_smtp_login_when_credentials_set(app, smtp):
    _, server = smtp
    send_email("a@example.com", "welcome", "Welcome", TEMPLATE_DATA)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("relay", "relay-pw")


@pytest.mark.parametrize("cfg", [make_config(app_env="production")])
def test_mailjet_outside_local_environments(app, monkeypatch):
    captured = {}

    def _post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return StubResponse({"Messages": [{"Status": "success"}]})

    monkeypatch.setattr(requests, "post", _post)

    send_email("a@example.com", "welcome", "Welcome", TEMPLATE_DATA)

    assert captured["url"] == "https://api.mailjet.com/v3.1/send"
    assert captured["auth"] == ("mj-key", "mj-secret")
    message = captured["json"]["Messages"][0]
    assert message["From"] == {"Email": "support@flapi.org", "Name": "Flapi Support"}
    assert message["To"] == [{"Email": "a@example.com"}]
    assert "123456" in message["HTMLPart"]


@pytest.mark.parametrize("cfg", [make_config(app_env="production")])
def test_mailjet_error(app, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, **kw: StubResponse({"ErrorMessage": "bad key"}, status_code=401))
    with pytest.raises(ExternalServiceError) as exc:
        send_email("a@example.com", "welcome", "Welcome", TEMPLATE_DATA)
    assert exc.value.service == "mailjet"


def test_send_sms(app, monkeypatch):
    captured = {}

    def _post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return StubResponse({"data": {"success": True}}, status_code=201)

    monkeypatch.setattr(requests, "post", _post)

    send_sms("+33600000000", "Your code is 123456")

    assert captured["url"] == "https://api.textbee.dev/api/v1/gateway/devices/device-42/send-sms"
    assert captured["headers"] == {"x-api-key": "tb-key"}
    assert captured["json"] == {"recipients": ["+33600000000"], "message": "Your code is 123456"}


def test_send_sms_transport_error(app, monkeypatch):
    def _down(*args, **kwargs):
        raise requests.ConnectionError("gateway offline")

    monkeypatch.setattr(requests, "post", _down)
    with pytest.raises(ExternalServiceError, match="textbee"):
        send_sms("+33600000000", "hello")
