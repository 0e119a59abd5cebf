"""Ledger error taxonomy and global error handlers."""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for errors surfaced to callers of the engine."""
    status_code = 500
    code = 'ledger_error'

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        from bucketledger.api.v1.schemas import APIResponse
        return APIResponse.error(self.message, code=self.code, details=self.details)


class NotFound(LedgerError):
    """Referenced bucket, income, expense or user does not exist."""
    status_code = 404
    code = 'not_found'


class InvalidConfiguration(LedgerError):
    """Rejected at write time, never discovered during rollover."""
    status_code = 400
    code = 'invalid_configuration'


class AlreadyProcessed(LedgerError):
    """Rollover already ran for this period. Callers treat it as a no-op success."""
    status_code = 200
    code = 'already_processed'

    def __init__(self, message: str, period=None, performed_at=None):
        super().__init__(message)
        self.period = period
        self.performed_at = performed_at


class SpendDerivationError(LedgerError):
    """Expense query failed. Retryable; spend must never default to zero."""
    status_code = 503
    code = 'spend_unavailable'


def register_error_handlers(app):
    """Register JSON error handlers for the application."""
    from bucketledger.api.v1.schemas import APIResponse

    @app.errorhandler(LedgerError)
    def ledger_error(error):
        if error.status_code >= 500:
            logger.error(f'{error.code}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify(APIResponse.error(error.description, code=error.name.lower().replace(' ', '_'))), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception(f'Server Error: {error}')
        return jsonify(APIResponse.error('Internal server error', code='internal_error')), 500
