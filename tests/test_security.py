from datetime import timedelta

from jose import jwt

from app.core.config import settings
from app.core.security import create_access_token, hash_password, verify_access_token
from app.schemas.common import ErrorResponse


def test_password_is_stored_as_bcrypt_hash():
    hashed = hash_password("s3cret")

    assert hashed != "s3cret"
    assert hashed.startswith("$2")
    assert hash_password("s3cret") != hashed


def test_access_token_carries_identity():
    payload = verify_access_token(create_access_token(42, "rina", "teacher"))

    assert payload["sub"] == "42"
    assert payload["username"] == "rina"
    assert payload["role"] == "teacher"


def test_expired_token_is_rejected():
    token = create_access_token(1, "rina", "teacher", expires_delta=timedelta(seconds=-1))

    assert verify_access_token(token) is None


def test_token_of_another_type_is_rejected():
    token = jwt.encode(
        {"sub": "1", "type": "refresh"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    assert verify_access_token(token) is None


def test_tampered_token_is_rejected():
    assert verify_access_token(create_access_token(1, "rina", "teacher") + "x") is None


def test_deactivated_user_is_rejected(client, make_user, auth_headers):
    user = make_user()
    user.is_active = False

    response = client.get("/api/v1/monthly-exams", headers=auth_headers(user))

    assert response.status_code == 401
    error = ErrorResponse.model_validate(response.json()).error
    assert error.code == "AUTH_FAILED"
    assert error.message == "User account is deactivated"
