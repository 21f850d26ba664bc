"""
Domain exceptions and their mapping to safe HTTP errors.

Services raise the MedStockError family below. Only the API layer converts
them into HTTPException, through BusinessError: generic messages outside,
detailed logging inside.
"""
from typing import Any, Optional

from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class MedStockError(Exception):
    """Base class for every error raised by the inventory core."""


class ConfigurationError(MedStockError):
    """Spreadsheet credentials (API key or sheet id) are missing."""


class RemoteError(MedStockError):
    """The row store answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(MedStockError):
    """The row store could not be reached (connection failure, timeout)."""


class NotFoundError(MedStockError):
    """A referenced medicine, store, user or stock row does not exist."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class InvalidInputError(MedStockError):
    """Request breaks a business rule the user can correct."""


class InvalidTransferError(InvalidInputError):
    """Transfer request is malformed (same source and target, quantity <= 0)."""


class InsufficientStockError(MedStockError):
    """Source location holds less than the requested quantity."""

    def __init__(self, medicine_id: str, location: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock in {'main store' if location == 'main' else location}: "
            f"available {available}, requested {requested}"
        )
        self.medicine_id = medicine_id
        self.location = location
        self.available = available
        self.requested = requested


class StaleRowError(MedStockError):
    """A row changed between the read and the write that depended on it."""

    def __init__(self, table: str, row_number: int):
        super().__init__(f"Row {row_number} of {table} changed since it was read")
        self.table = table
        self.row_number = row_number


class TransferIncompleteError(MedStockError):
    """Debit succeeded but credit failed. Total quantity is no longer conserved.

    No compensation is attempted; ``transfer`` describes what was debited so
    an operator can repair the target location by hand.
    """

    def __init__(self, transfer: Any, cause: Exception):
        super().__init__(
            f"Transfer {transfer.id} debited {transfer.from_store} but crediting "
            f"{transfer.to_store} failed: {cause}"
        )
        self.transfer = transfer
        self.cause = cause


class AuditWriteFailed(MedStockError):
    """The mutation succeeded but its audit record could not be written.

    ``result`` holds whatever the mutation produced, so callers can still
    report it while flagging the missing audit entry.
    """

    def __init__(self, kind: str, result: Any, cause: Exception):
        super().__init__(f"Audit record '{kind}' was not written: {cause}")
        self.kind = kind
        self.result = result
        self.cause = cause


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Same response for unknown user and missing token."""
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business rule errors.

        OK to include specific details here since the user caused the issue.
        Examples: "Insufficient stock in main store", "Quantity must be positive"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        """409 for rows that changed underneath us."""
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def service_unavailable(detail: str) -> HTTPException:
        """503 when the row store is not configured yet."""
        logger.warning(f"Service unavailable: {detail}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )

    @staticmethod
    def bad_gateway(original_error: Exception) -> HTTPException:
        """502 for row store failures. Provider message is logged, not returned."""
        logger.error(f"Row store failure: {type(original_error).__name__}: {original_error}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The spreadsheet backend could not complete the request.",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from user.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )

    @classmethod
    def from_domain(cls, error: MedStockError) -> HTTPException:
        """Translate a core exception into the matching HTTP error."""
        if isinstance(error, NotFoundError):
            return cls.not_found(error.resource, str(error.identifier))
        if isinstance(error, (InsufficientStockError, InvalidInputError)):
            return cls.bad_request(str(error))
        if isinstance(error, StaleRowError):
            return cls.conflict("Stock changed while saving. Refresh and try again.")
        if isinstance(error, ConfigurationError):
            return cls.service_unavailable(str(error))
        if isinstance(error, (RemoteError, TransportError)):
            return cls.bad_gateway(error)
        return cls.server_error(error)
