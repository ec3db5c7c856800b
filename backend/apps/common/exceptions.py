"""
Custom exceptions for the contract auditor

APIException subclasses are surfaced as ordinary HTTP error responses.
The plain exceptions below them only ever travel in-band, as `error`
events on an already-open analysis stream.
"""
from rest_framework.exceptions import APIException


class ValidationFailure(APIException):
    """Raised when an analysis request is rejected before the stream opens"""
    status_code = 400
    default_detail = 'Please provide valid Solidity code.'
    default_code = 'validation_failure'


class AuditNotFound(APIException):
    """Raised when no audit record exists for an identifier"""
    status_code = 404
    default_detail = 'Audit not found'
    default_code = 'audit_not_found'


class ContractNotFound(APIException):
    """Raised when the registry has no verified source for an address"""
    status_code = 404
    default_detail = (
        'Contract source code not found. '
        'Make sure the contract is verified on Etherscan.'
    )
    default_code = 'contract_not_found'


class RegistryNotConfigured(APIException):
    """Raised when the contract registry API key is missing"""
    status_code = 500
    default_detail = 'Etherscan API key not configured.'
    default_code = 'registry_not_configured'


class RegistryUnavailable(APIException):
    """Raised when the contract registry cannot be reached"""
    status_code = 502
    default_detail = 'Failed to fetch from Etherscan.'
    default_code = 'registry_unavailable'


class PaymentRequired(APIException):
    """Raised when the payment gate rejects a metered request"""
    status_code = 402
    default_detail = 'X-PAYMENT header is required'
    default_code = 'payment_required'


class ProviderFailure(Exception):
    """The model call failed (network, timeout, provider error)"""

    default_message = 'Analysis failed'

    def __init__(self, message: str = ''):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ParseFailure(Exception):
    """The model output could not be salvaged into structured data"""

    user_message = 'Failed to parse audit results. Please try again.'


class PersistenceFailure(Exception):
    """Writing an audit record failed. Never surfaced to the caller."""
