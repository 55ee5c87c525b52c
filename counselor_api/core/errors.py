# counselor_api/core/errors.py
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CounselError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def detail(self) -> Any:
        return self.message


class NotFoundError(CounselError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(CounselError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailedError(CounselError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(CounselError):
    status_code = status.HTTP_409_CONFLICT


class RecipientNotRegisteredError(ValidationFailedError):
    """The share recipient has no account yet; carries a registration deep link."""

    def __init__(self, recipient_email: str, invitation_url: str):
        self.recipient_email = recipient_email
        self.invitation_url = invitation_url
        super().__init__("This person is not registered yet. Please invite them to register first.")

    @property
    def detail(self) -> Dict[str, str]:
        return {
            "message": self.message,
            "invitationUrl": self.invitation_url,
            "recipientEmail": self.recipient_email,
        }


class ProcessingError(CounselError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamGenerationError(ProcessingError):
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str = "We were unable to process your message. Please try again.",
                 cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


async def counsel_error_handler(request: Request, exc: CounselError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CounselError, counsel_error_handler)
