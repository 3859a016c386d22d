from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error."""

    status_code: int = 500

    def __init__(self, detail: str = "", validation_errors: list[Any] | None = None) -> None:
        self.detail = detail
        self.validation_errors = validation_errors
        super().__init__(detail)


class ServerError(AppError):
    pass


class DatabaseError(AppError):
    pass


class NotFoundError(AppError):
    status_code = 404


class AlreadyExistsError(AppError):
    status_code = 409


class UnauthorizedError(AppError):
    status_code = 403


class InvalidBodyError(AppError):
    """Request body failed schema validation; details go in ``validation_errors``."""

    status_code = 400


class InvalidModificationError(AppError):
    status_code = 400

    def __init__(self, detail: str = "", invalid_diffs: list[Any] | None = None) -> None:
        super().__init__(detail)
        self.invalid_diffs = invalid_diffs


class UnprocessableEntityError(AppError):
    status_code = 422


class UnmetConditionError(UnprocessableEntityError):
    pass


class TransferNotConditionalError(UnprocessableEntityError):
    pass


class AlreadyRolledBackError(UnprocessableEntityError):
    pass


class InvalidUriError(AppError):
    """URI is not of the expected resource type, or the type is unknown."""

    status_code = 400


class InvalidUriParameterError(AppError):
    status_code = 400
