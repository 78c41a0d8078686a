import pytest
from sqlalchemy.exc import OperationalError

from booking_api.services.documents import document_store
from booking_api.services.tokens import decode_custom_token


def _stored_code(otp_manager, email):
    return otp_manager.store.get(email).code


def test_send_otp(client, otp_manager, sender):
    response = client.post("/auth/send-otp", json={"email": "a@x.com"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "OTP sent successfully",
        "expiresIn": "10 minutes",
    }
    assert sender.sent[0][0] == "a@x.com"
    assert len(otp_manager.store) == 1


def test_send_otp_requires_email(client):
    response = client.post("/auth/send-otp", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Email is required"}


def test_send_otp_delivery_failure(client, otp_manager, sender):
    sender.fail = True

    response = client.post("/auth/send-otp", json={"email": "a@x.com"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to send OTP"}
    assert otp_manager.store.get("a@x.com") is not None


def test_verify_otp_flow(client, otp_manager):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    code = _stored_code(otp_manager, "a@x.com")

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Email verified successfully"}

    replay = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})
    assert replay.status_code == 400
    assert replay.json() == {"success": False, "error": "OTP not found or expired"}


def test_verify_otp_invalid_code(client, otp_manager):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    code = _stored_code(otp_manager, "a@x.com")
    wrong = "999999" if code != "999999" else "999998"

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": wrong})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid OTP"}
    assert otp_manager.store.get("a@x.com") is not None


def test_verify_otp_expired(client, otp_manager, clock):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    code = _stored_code(otp_manager, "a@x.com")
    clock.advance(minutes=11)

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "OTP has expired"}
    assert len(otp_manager.store) == 0


def test_verify_otp_requires_fields(client):
    response = client.post("/auth/verify-otp", json={"email": "a@x.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "Email and OTP are required"}


def test_resend_otp_replaces_code(client, otp_manager, sender):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    first = _stored_code(otp_manager, "a@x.com")

    response = client.post("/auth/resend-otp", json={"email": "a@x.com"})

    assert response.status_code == 200
    assert response.json()["message"] == "New OTP sent successfully"
    assert response.json()["expiresIn"] == "10 minutes"
    assert sender.sent[-1][1] == "Your New OTP Verification Code"
    second = _stored_code(otp_manager, "a@x.com")
    assert second in sender.sent[-1][2]
    if first != second:
        rejected = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": first})
        assert rejected.status_code == 400
    accepted = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": second})
    assert accepted.status_code == 200


def test_resend_otp_delivery_failure(client, sender):
    sender.fail = True

    response = client.post("/auth/resend-otp", json={"email": "a@x.com"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to resend OTP"}


def test_custom_token_creates_user_document(client):
    response = client.post("/auth/custom-token", json={"uid": "u-1", "email": "a@x.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    claims = decode_custom_token(body["token"])
    assert claims["sub"] == "u-1"
    assert claims["email"] == "a@x.com"
    assert document_store.get("users", "u-1")["email"] == "a@x.com"


def test_custom_token_requires_uid_and_email(client):
    response = client.post("/auth/custom-token", json={"uid": "u-1"})

    assert response.status_code == 400
    assert response.json() == {"error": "UID and email are required"}


def _store_down(*args, **kwargs):
    raise OperationalError("SELECT otp_codes", {}, Exception("database is unavailable"))


def test_verify_otp_numeric_code_is_invalid(client, otp_manager):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    code = _stored_code(otp_manager, "a@x.com")

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": int(code)})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid OTP"}
    assert otp_manager.store.get("a@x.com") is not None


def test_verify_otp_overlong_code_is_invalid(client, otp_manager):
    client.post("/auth/send-otp", json={"email": "a@x.com"})

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": "1" * 17})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid OTP"}


@pytest.mark.parametrize(
    "path,kwargs,error",
    [
        ("/auth/send-otp", {"json": {"email": 12345}}, "Email is required"),
        ("/auth/send-otp", {}, "Email is required"),
        ("/auth/resend-otp", {"content": b"not json", "headers": {"Content-Type": "application/json"}}, "Email is required"),
        ("/auth/verify-otp", {"json": {"email": ["a@x.com"], "otp": "123456"}}, "Email and OTP are required"),
        ("/auth/verify-otp", {}, "Email and OTP are required"),
        ("/auth/custom-token", {"json": {"uid": {"id": 1}, "email": "a@x.com"}}, "UID and email are required"),
    ],
)
def test_malformed_auth_bodies_get_json_errors(client, path, kwargs, error):
    response = client.post(path, **kwargs)

    assert response.status_code == 400
    assert response.json() == {"error": error}


def test_other_routes_keep_default_validation(client):
    response = client.post("/confirm-payment", json={"paymentIntentId": {"nested": True}})

    assert response.status_code == 422
    assert "detail" in response.json()


def test_verify_otp_store_failure(client, otp_manager, monkeypatch):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    monkeypatch.setattr(otp_manager.store, "get", _store_down)

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": "123456"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to verify OTP"}


@pytest.mark.parametrize(
    "path,error", [("/auth/send-otp", "Failed to send OTP"), ("/auth/resend-otp", "Failed to resend OTP")]
)
def test_issue_store_failure(client, otp_manager, sender, monkeypatch, path, error):
    monkeypatch.setattr(otp_manager.store, "set", _store_down)

    response = client.post(path, json={"email": "a@x.com"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": error}
    assert sender.sent == []


def test_swept_expired_code_reports_not_found(client, otp_manager, clock):
    client.post("/auth/send-otp", json={"email": "a@x.com"})
    code = _stored_code(otp_manager, "a@x.com")
    clock.advance(minutes=11)
    # Issuing for someone else sweeps a@x.com's expired record first.
    client.post("/auth/send-otp", json={"email": "b@y.com"})

    response = client.post("/auth/verify-otp", json={"email": "a@x.com", "otp": code})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "OTP not found or expired"}
