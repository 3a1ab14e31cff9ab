# app/core/exceptions.py
"""
Error taxonomy shared by services and endpoints.

Services raise these; app.main renders them as
{"message": ..., "code": ...} with the matching HTTP status.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class OrgRequired(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ORG_REQUIRED"
    default_message = "Please select a hospital to continue"


class FeatureDisabled(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "FEATURE_DISABLED"
    default_message = "Module disabled"


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Forbidden"


class Internal(AppError):
    pass
