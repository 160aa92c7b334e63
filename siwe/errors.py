"""Exceptions raised while constructing and verifying SIWE messages."""

from enum import Enum
from typing import Any, Optional


class SiweErrorType(str, Enum):
    """Kinds of failure a SIWE message can run into."""

    UNABLE_TO_VERIFY = "Unable to verify the message."
    INVALID_INPUT_KEYS = "Invalid input keys."
    MALFORMED_MESSAGE = "Message is not a valid EIP-4361 message."
    SCHEME_MISMATCH = "Scheme does not match the expected value."
    DOMAIN_MISMATCH = "Domain does not match the expected value."
    NONCE_MISMATCH = "Nonce does not match the expected value."
    EXPIRED_MESSAGE = "Expired message."
    NOT_YET_VALID_MESSAGE = "Message is not valid yet."
    INVALID_SIGNATURE = "Signature does not match address of the message."

    def __str__(self):
        """Human-readable description of the failure."""
        return self.value


class VerificationError(Exception):
    """Top-level validation and verification exception."""

    type: SiweErrorType = SiweErrorType.UNABLE_TO_VERIFY

    def __init__(self, expected: Optional[Any] = None, received: Optional[Any] = None):
        """Construct the exception with the expected and received values."""
        self.expected = expected
        self.received = received
        super().__init__(self.describe())

    def describe(self) -> str:
        """Describe the failure along with the values which caused it."""
        description = str(self.type)
        if self.expected is not None or self.received is not None:
            description += f" Expected: {self.expected!r}, received: {self.received!r}"
        return description


class InvalidInputKeys(VerificationError):
    """Unrecognized keys were passed, or a required one is missing."""

    type = SiweErrorType.INVALID_INPUT_KEYS


class MalformedMessage(VerificationError, ValueError):
    """The message cannot be represented in the EIP-4361 format."""

    type = SiweErrorType.MALFORMED_MESSAGE

    def __init__(self, reason: str):
        """Construct the exception with the parser diagnostic."""
        self.reason = reason
        super().__init__(received=reason)

    def describe(self) -> str:
        """Describe the failure with the parser diagnostic."""
        return f"{self.type} {self.reason}"


class InvalidSignature(VerificationError):
    """The signature does not match the message."""

    type = SiweErrorType.INVALID_SIGNATURE


class ExpiredMessage(VerificationError):
    """The message is not valid any more."""

    type = SiweErrorType.EXPIRED_MESSAGE


class NotYetValidMessage(VerificationError):
    """The message is not yet valid."""

    type = SiweErrorType.NOT_YET_VALID_MESSAGE


class SchemeMismatch(VerificationError):
    """The message does not contain the expected scheme."""

    type = SiweErrorType.SCHEME_MISMATCH


class DomainMismatch(VerificationError):
    """The message does not contain the expected domain."""

    type = SiweErrorType.DOMAIN_MISMATCH


class NonceMismatch(VerificationError):
    """The message does not contain the expected nonce."""

    type = SiweErrorType.NONCE_MISMATCH
