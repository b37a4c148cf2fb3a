"""
Exception classes for the mail DKIM signer
"""

from typing import Optional, Dict, Any


class MailDkimError(Exception):
    """Base exception for all mail DKIM errors"""

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class DkimSigningError(MailDkimError):
    """
    Exception raised when a DKIM signature cannot be produced.

    This is the only error kind surfaced by signing; the cause is available
    through ``error_code`` and the chained exception.
    """

    def __repr__(self) -> str:
        return f"DkimSigningError(message='{self.message}', code='{self.error_code}', details={self.details})"


class KeyLoadError(MailDkimError):
    """Exception raised when RSA key material cannot be parsed"""
    pass


class ConfigurationError(MailDkimError):
    """Exception raised for signer configuration loading and validation errors"""
    pass


class SigningErrorCodes:
    """Standard error codes for signing operations"""

    # Parameter errors
    INVALID_PARAMETER = "INVALID_PARAMETER"
    IDENTITY_DOMAIN_MISMATCH = "IDENTITY_DOMAIN_MISMATCH"
    MISSING_REQUIRED_HEADER = "MISSING_REQUIRED_HEADER"

    # Message errors
    BODY_READ_FAILED = "BODY_READ_FAILED"
    HEADER_READ_FAILED = "HEADER_READ_FAILED"

    # Signature assembly errors
    INCOMPLETE_SIGNATURE = "INCOMPLETE_SIGNATURE"

    # Crypto errors
    SIGNING_FAILED = "SIGNING_FAILED"
    INVALID_PRIVATE_KEY = "INVALID_PRIVATE_KEY"
