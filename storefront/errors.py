# storefront/errors.py
"""Domain errors.

Each error is an ``HTTPException`` so handlers and helpers can raise it directly
and FastAPI renders ``{"detail": ...}`` with the matching status code.
"""
from fastapi import HTTPException, status


class ShopError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"

    def __init__(self, detail: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(ShopError):
    default_detail = "Invalid request"


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Unauthorized(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authorized"


class Forbidden(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized as admin"


class InvalidCredentials(ShopError):
    # одно сообщение: не раскрываем, что именно неверно
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid email or password"


class DuplicateEmail(ShopError):
    default_detail = "User already exists"


class EmptyCart(ShopError):
    default_detail = "Cart is empty"


class OutOfStock(ShopError):
    default_detail = "Insufficient stock"


class InvalidSignature(ShopError):
    default_detail = "Webhook signature verification failed"


class UpstreamError(ShopError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway error"
