"""Unit tests for tokens, password hashing and error status mapping."""

import datetime as dt

import jwt
import pytest
from freezegun import freeze_time

from easybill.errors import (
    BusinessError,
    ErrorCodes,
    ForbiddenError,
    ResourceNotFoundError,
    TenantIsolationError,
    UnauthorizedError,
    ValidationError,
    http_status_for,
)
from easybill.security.passwords import hash_password, verify_password
from easybill.security.tokens import (
    create_access_token,
    create_platform_admin_token,
    create_refresh_token,
    decode_token,
    extract_bearer,
)
from easybill.settings import settings


@pytest.mark.unit
class TestTokens:

    def test_access_token_claims(self):
        token = create_access_token("u-1", "t-1", ["ROLE_USER", "ROLE_ADMIN", "ROLE_USER"], "asha")

        claims = decode_token(token)

        assert claims["sub"] == "u-1"
        assert claims["userId"] == "u-1"
        assert claims["tenantId"] == "t-1"
        assert claims["roles"] == ["ROLE_ADMIN", "ROLE_USER"]
        assert claims["type"] == "access"
        assert claims["username"] == "asha"
        assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_TTL_SECONDS

    def test_refresh_token_has_no_tenant(self):
        claims = decode_token(create_refresh_token("u-1"))

        assert claims["type"] == "refresh"
        assert "tenantId" not in claims

    def test_platform_admin_token(self):
        claims = decode_token(create_platform_admin_token("ops-1"))

        assert claims["tenantId"] == "platform"
        assert claims["roles"] == ["ROLE_SUPER_ADMIN"]

    def test_expired_token(self):
        with freeze_time("2025-08-17 10:00:00"):
            token = create_access_token("u-1", "t-1", ["ROLE_USER"])

        later = dt.datetime(2025, 8, 17, 10, 0, 0) + dt.timedelta(seconds=settings.ACCESS_TOKEN_TTL_SECONDS + 1)
        with freeze_time(later):
            with pytest.raises(UnauthorizedError) as exc_info:
                decode_token(token)

        assert exc_info.value.error_code == ErrorCodes.TOKEN_EXPIRED

    def test_token_signed_with_other_secret(self):
        forged = jwt.encode({"sub": "u-1", "tenantId": "t-1"}, "not-the-secret", algorithm="HS256")

        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(forged)

        assert exc_info.value.error_code == ErrorCodes.INVALID_TOKEN

    def test_garbage_token(self):
        with pytest.raises(UnauthorizedError):
            decode_token("not.a.jwt")

    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc.def", "abc.def"),
        ("Bearer   ", None),
        ("Basic dXNlcjpwdw==", None),
        (None, None),
        ("", None),
    ])
    def test_extract_bearer(self, header, expected):
        assert extract_bearer(header) == expected


@pytest.mark.unit
class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("Secret123!")

        assert hashed != "Secret123!"
        assert verify_password("Secret123!", hashed)
        assert not verify_password("secret123!", hashed)

    def test_empty_inputs(self):
        assert not verify_password("", hash_password("x"))
        assert not verify_password("x", "")

    def test_malformed_hash(self):
        assert not verify_password("Secret123!", "plain-text-password")


@pytest.mark.unit
class TestErrors:

    def test_message_formatting(self):
        error = BusinessError(ErrorCodes.INSUFFICIENT_STOCK, "Only %s left of %s", 2, "Soap")

        assert error.formatted_message == "Only 2 left of Soap"
        assert str(error) == "Only 2 left of Soap"
        assert error.to_dict() == {"code": "ERR_INSUFFICIENT_STOCK", "message": "Only 2 left of Soap"}

    def test_bad_format_falls_back_to_raw_message(self):
        error = BusinessError(ErrorCodes.INVALID_REQUEST, "Needs %d", "text")

        assert error.formatted_message == "Needs %d"

    def test_message_defaults_to_code(self):
        assert BusinessError(ErrorCodes.PAYMENT_FAILED).formatted_message == "ERR_PAYMENT_FAILED"

    def test_not_found_message(self):
        error = ResourceNotFoundError("Invoice", "abc")

        assert error.formatted_message == "Invoice not found with identifier: abc"
        assert error.error_code == ErrorCodes.RESOURCE_NOT_FOUND

    def test_validation_error_field_errors(self):
        error = ValidationError("Invalid", field_errors={"quantity": "must be positive"})

        assert error.to_dict()["field_errors"] == {"quantity": "must be positive"}
        assert "field_errors" not in ValidationError("Invalid").to_dict()

    @pytest.mark.parametrize("error,status", [
        (BusinessError(ErrorCodes.TENANT_SUSPENDED), 403),
        (BusinessError(ErrorCodes.TENANT_NOT_FOUND), 404),
        (BusinessError(ErrorCodes.PRODUCT_NOT_FOUND), 404),
        (BusinessError(ErrorCodes.TOKEN_EXPIRED), 401),
        (BusinessError(ErrorCodes.INSUFFICIENT_STOCK), 400),
        (ResourceNotFoundError("Tenant", "x", ErrorCodes.TENANT_NOT_FOUND), 404),
        (UnauthorizedError(), 401),
        (ForbiddenError(), 403),
        (TenantIsolationError("t-1", "t-2"), 403),
        (ValidationError("bad"), 400),
    ])
    def test_http_status(self, error, status):
        assert http_status_for(error) == status
