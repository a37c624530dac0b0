from __future__ import annotations
from typing import Optional

from .config import GENERIC_RETRY_MESSAGE, SESSION_EXPIRED_MESSAGE


class CvSlayerError(Exception):
    """Base error. ``user_message`` is the only part that may reach the screen."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, user_message: Optional[str] = None, detail: Optional[str] = None):
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(self.user_message)


class InputRejected(CvSlayerError):
    default_message = "Please check your input and try again."


class TransportFailure(CvSlayerError):
    default_message = GENERIC_RETRY_MESSAGE


class ServiceRejected(CvSlayerError):
    default_message = "Request failed. Please try again."

    def __init__(self, user_message: Optional[str] = None, detail: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(user_message, detail)
        self.status_code = status_code


class LoginFailed(ServiceRejected):
    default_message = "Login failed"


class SessionExpired(CvSlayerError):
    default_message = SESSION_EXPIRED_MESSAGE
