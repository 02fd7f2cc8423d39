import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.platform.exceptions import EmailDeliveryError
from app.platform.services import email as email_service


@pytest.fixture
def relay_settings():
    with patch.object(email_service.settings, "EMAIL_RELAY_URL", "https://relay.example.com/send"), patch.object(
        email_service.settings, "EMAIL_RELAY_API_KEY", "relay-key"
    ):
        yield


def test_relay_success_returns_message_id(relay_settings):
    response = MagicMock()
    response.json.return_value = {"message_id": "relay-42", "message": "queued"}

    with patch("app.platform.services.email.requests.post", return_value=response) as mock_post:
        message_id = email_service.send_email("buyer@example.com", "Subject", "<p>Hi</p>")

    assert message_id == "relay-42"
    assert mock_post.call_args.kwargs["headers"]["X-API-Key"] == "relay-key"


def test_relay_failure_falls_back_to_smtp(relay_settings):
    with patch(
        "app.platform.services.email.requests.post", side_effect=requests.exceptions.ConnectionError("down")
    ), patch("app.platform.services.email.send_email_direct_smtp", return_value="<smtp-id>") as mock_smtp:
        message_id = email_service.send_email("buyer@example.com", "Subject", "<p>Hi</p>")

    assert message_id == "<smtp-id>"
    mock_smtp.assert_called_once_with("buyer@example.com", "Subject", "<p>Hi</p>")


def test_relay_acceptance_with_non_json_body_does_not_resend(relay_settings):
    response = MagicMock()
    response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "Accepted", 0)

    with patch("app.platform.services.email.requests.post", return_value=response), patch(
        "app.platform.services.email.send_email_direct_smtp"
    ) as mock_smtp:
        message_id = email_service.send_email("buyer@example.com", "Subject", "<p>Hi</p>")

    assert message_id == ""
    mock_smtp.assert_not_called()


def test_relay_http_error_falls_back_to_smtp(relay_settings):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("502", response=MagicMock(status_code=502))

    with patch("app.platform.services.email.requests.post", return_value=response), patch(
        "app.platform.services.email.send_email_direct_smtp", return_value="<smtp-id>"
    ) as mock_smtp:
        assert email_service.send_email("buyer@example.com", "Subject", "<p>Hi</p>") == "<smtp-id>"

    mock_smtp.assert_called_once()


def test_smtp_failure_raises_email_delivery_error():
    with patch("app.platform.services.email.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
        with pytest.raises(EmailDeliveryError) as exc_info:
            email_service.send_email_direct_smtp("buyer@example.com", "Subject", "<p>Hi</p>")

    assert exc_info.value.status_code == 500


def test_verification_email_renders_code():
    with patch("app.platform.services.email.send_email", return_value="id-1") as mock_send:
        assert email_service.send_payment_verification_email("buyer@example.com", "042137", 10) == "id-1"

    to_email, subject, body = mock_send.call_args[0]
    assert to_email == "buyer@example.com"
    assert subject == "Email Verification - Muza Life"
    assert "042137" in body
    assert "10 minutes" in body
