# brokerdesk/core/exceptions.py

"""
Domain error taxonomy.

Every business-rule violation raised by services is a BrokerDeskError; the
handlers registered in brokerdesk.main turn them into ``{"message": ...}``
responses with the matching HTTP status code.
"""

from typing import Optional

from fastapi import status


class BrokerDeskError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class Unauthorized(BrokerDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class Forbidden(BrokerDeskError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Insufficient privileges"):
        super().__init__(message)


class NotFound(BrokerDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(BrokerDeskError):
    status_code = status.HTTP_409_CONFLICT


class ValidationError(BrokerDeskError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientBalance(BrokerDeskError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateTransition(BrokerDeskError):
    """Raised when an action is attempted outside the state it requires."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, entity: str, current_status: Optional[str], action: str):
        self.entity = entity
        self.current_status = current_status
        shown = current_status if current_status is not None else "None"
        super().__init__(f"Cannot {action} {entity}: current status is {shown}")
