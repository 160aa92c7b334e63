"""Library for EIP-4361 Sign-In with Ethereum."""

# flake8: noqa: F401
from .errors import (
    DomainMismatch,
    ExpiredMessage,
    InvalidInputKeys,
    InvalidSignature,
    MalformedMessage,
    NonceMismatch,
    NotYetValidMessage,
    SchemeMismatch,
    SiweErrorType,
    VerificationError,
)
from .siwe import (
    ISO8601Datetime,
    SiweMessage,
    SiweResponse,
    VerifyOpts,
    VerifyParams,
)
from .utils import (
    check_contract_wallet_signature,
    check_invalid_keys,
    generate_nonce,
    recover_address,
)
