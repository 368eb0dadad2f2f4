import logging

import pytest
import requests

from msegat_client import (
    ConfigurationError,
    MsegatClient,
    OTPSendResult,
    OTPVerifyResult,
    PersonalizedOptions,
    RequestError,
)
from msegat_client import msegat_api_caller

from conftest import FakeResponse


def test_missing_username_raises():
    with pytest.raises(ConfigurationError, match="username"):
        MsegatClient("", "", "")


def test_missing_sender_raises():
    with pytest.raises(ConfigurationError, match="user sender"):
        MsegatClient("testUser", "testApiKey", "")


def test_missing_api_key_raises():
    with pytest.raises(ConfigurationError, match="API key"):
        MsegatClient("testUser", "", "testSender")


def test_valid_config_and_default_sender():
    client = MsegatClient("testUser", "testApiKey")
    assert client.credentials.sender == "almasah"
    assert client.credentials.username == "testUser"
    assert client.timeout is None

    explicit = MsegatClient("testUser", "testApiKey", "testSender")
    assert explicit.credentials.sender == "testSender"


def test_send_message_posts_once(client, fake_post):
    fake_post.response = FakeResponse({"code": "1", "message": "Success"})

    result = client.send_message("1234567890", "Test Message")

    assert result == {"code": "1", "message": "Success"}
    assert len(fake_post.calls) == 1
    call = fake_post.calls[0]
    assert call["url"] == msegat_api_caller.SEND_SMS_URL
    assert call["headers"]["Content-Type"] == "application/json"
    assert fake_post.last_body == {
        "userName": "testUser",
        "numbers": "1234567890",
        "userSender": "testSender",
        "apiKey": "testApiKey",
        "msg": "Test Message",
        "msgEncoding": "UTF8",
    }


def test_vendor_failure_body_is_passed_through(client, fake_post):
    fake_post.response = FakeResponse({"code": "M0002", "message": "Invalid login info"}, status_code=200)
    assert client.send_message("1234567890", "hi") == {"code": "M0002", "message": "Invalid login info"}


def test_status_code_is_not_inspected(client, fake_post):
    fake_post.response = FakeResponse({"error": "server"}, status_code=500)
    assert client.send_message("1234567890", "hi") == {"error": "server"}


def test_personalized_payload_defaults(client, fake_post):
    numbers = ["A", "B"]
    variables = [{"name": "John"}, {"name": "Doe"}]

    client.send_personalized_messages(numbers, "Hello {name}", variables)

    assert fake_post.calls[0]["url"] == msegat_api_caller.SEND_VARS_URL
    body = fake_post.last_body
    assert body["numbers"] == numbers
    assert body["vars"] == variables
    assert body["msgEncoding"] == "UTF8"
    for optional in ("timeToSend", "exactTime", "reqBulkId", "reqFilter"):
        assert optional not in body


def test_personalized_options_only_supplied_fields():
    options = PersonalizedOptions(time_to_send="later", exact_time="2024-01-01 10:00:00", msg_encoding="windows-1256")
    client = MsegatClient("u", "k", "s")

    payload = client.build_personalized_payload(["1"], "Hi {name}", [{"name": "A"}], options)

    assert payload["timeToSend"] == "later"
    assert payload["exactTime"] == "2024-01-01 10:00:00"
    assert payload["msgEncoding"] == "windows-1256"
    assert "reqBulkId" not in payload
    assert "reqFilter" not in payload


def test_personalized_does_not_check_alignment(client, fake_post):
    client.send_personalized_messages(["A", "B", "C"], "Hi {name}", [{"name": "only one"}])
    assert len(fake_post.last_body["numbers"]) == 3
    assert len(fake_post.last_body["vars"]) == 1


def test_cost_payload_has_exact_fields(client, fake_post):
    fake_post.response = FakeResponse({"cost": 0.05})

    result = client.calculate_message_cost("numbers", "1234567890", "Test Message", "Link", "UTF8")

    assert result == {"cost": 0.05}
    assert fake_post.calls[0]["url"] == msegat_api_caller.CALCULATE_COST_URL
    assert set(fake_post.last_body) == {
        "userName", "apiKey", "contactType", "contacts", "msg", "by", "msgEncoding",
    }
    assert fake_post.last_body["contactType"] == "numbers"
    assert fake_post.last_body["by"] == "Link"


def test_send_otp_code(client, fake_post):
    fake_post.response = FakeResponse({"code": "1", "message": "Success", "id": 40})

    result = client.send_otp_code("966500000000", "Ar")

    assert isinstance(result, OTPSendResult)
    assert result.code == "1"
    assert result.id == 40
    assert result.message == "Success"
    assert result.raw == {"code": "1", "message": "Success", "id": 40}
    assert fake_post.calls[0]["url"] == msegat_api_caller.SEND_OTP_URL
    assert fake_post.last_body == {
        "lang": "Ar",
        "userName": "testUser",
        "number": "966500000000",
        "apiKey": "testApiKey",
        "userSender": "testSender",
    }


def test_verify_otp_code(client, fake_post):
    fake_post.response = FakeResponse({"code": "1", "message": "Success"})

    result = client.verify_otp_code("1234", 40, "En")

    assert isinstance(result, OTPVerifyResult)
    assert result.code == "1"
    assert result.message == "Success"
    assert fake_post.calls[0]["url"] == msegat_api_caller.VERIFY_OTP_URL
    assert fake_post.last_body == {
        "lang": "En",
        "userName": "testUser",
        "apiKey": "testApiKey",
        "code": "1234",
        "id": 40,
        "userSender": "testSender",
    }


def test_otp_result_with_unexpected_body(client, fake_post):
    fake_post.response = FakeResponse(["not", "an", "object"])
    result = client.verify_otp_code("1234", 40, "En")
    assert result.code is None
    assert result.raw == ["not", "an", "object"]


@pytest.mark.parametrize("call, prefix", [
    (lambda c: c.send_message("1234567890", "Test Message"), "Error sending message: "),
    (lambda c: c.send_personalized_messages(["A"], "Hi", [{}]), "Error sending personalized messages: "),
    (lambda c: c.calculate_message_cost("numbers", "1", "Hi", "Link", "UTF8"), "Error calculating message cost: "),
    (lambda c: c.send_otp_code("1", "En"), "Error sending OTP code: "),
    (lambda c: c.verify_otp_code("1234", 1, "En"), "Error verifying OTP code: "),
])
def test_connection_errors_are_wrapped(client, fake_post, call, prefix):
    fake_post.error = requests.exceptions.ConnectionError("Connection refused")

    with pytest.raises(RequestError) as exc_info:
        call(client)

    message = str(exc_info.value)
    assert message.startswith(prefix)
    assert "Problem with request: Connection refused" in message
    assert isinstance(exc_info.value.__cause__, RequestError)


def test_non_json_body_is_request_error(client, fake_post):
    fake_post.response = FakeResponse(text="<html>Bad Gateway</html>", status_code=502)

    with pytest.raises(RequestError, match="^Error sending message: Problem with request: "):
        client.send_message("1234567890", "Test Message")


def test_wire_body_round_trips(client, fake_post):
    payload = {
        "text": "مرحبا {name}",
        "nested": {"list": [1, 2.5, None, True], "empty": {}},
        "number": "0500000000",
    }

    client.post_json("https://example.invalid/endpoint", payload)

    assert fake_post.last_body == payload


def test_timeout_is_forwarded(fake_post):
    client = MsegatClient("u", "k", "s", timeout=5)
    client.send_message("1", "hi")
    assert fake_post.calls[0]["timeout"] == 5


def test_sms_event_masks_number(client, fake_post, caplog):
    caplog.set_level(logging.INFO, logger="msegat.sms")

    client.send_message("966512345678", "hi")

    assert "event_type=sms_sent" in caplog.text
    assert "to_number=********5678" in caplog.text
    assert "966512345678" not in caplog.text
    assert "testApiKey" not in caplog.text
