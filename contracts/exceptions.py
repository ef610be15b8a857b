"""
Workflow error kinds

All are DRF APIExceptions, so views can let them propagate and the default
exception handler renders `{"detail": ...}` with the right status code.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class WorkflowError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Workflow operation failed.'
    default_code = 'workflow_error'


class NotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class AccessDenied(WorkflowError):
    """Resource belongs to another tenant."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Access denied.'
    default_code = 'access_denied'


class Forbidden(WorkflowError):
    """Wrong state, already processed, or missing permission."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Action not allowed.'
    default_code = 'forbidden'


class ValidationFailed(Forbidden):
    """Required input missing (comment, signed document key)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation'
