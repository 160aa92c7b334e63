"""SIWE message parser."""

import re
from typing import Any, Dict, List, Optional

from .defs import REGEX_MESSAGE

_EXPR = re.compile(REGEX_MESSAGE)


class ParsedMessage:
    """Regex parsed SIWE message."""

    scheme: Optional[str]
    domain: str
    address: str
    statement: Optional[str]
    uri: str
    version: str
    chain_id: str
    nonce: str
    issued_at: str
    expiration_time: Optional[str]
    not_before: Optional[str]
    request_id: Optional[str]
    resources: Optional[List[str]]

    def __init__(self, message: str):
        """Parse a SIWE message."""
        if not isinstance(message, str):
            raise ValueError(f"Message must be a string, not {type(message).__name__}.")

        match = _EXPR.fullmatch(message)
        if not match:
            raise ValueError("Message did not match the regular expression.")

        self.scheme = match.group("scheme")
        self.domain = match.group("domain")
        self.address = match.group("address")
        self.statement = match.group("statement")
        self.uri = match.group("uri")
        self.version = match.group("version")
        self.chain_id = match.group("chainId")
        self.nonce = match.group("nonce")
        self.issued_at = match.group("issuedAt")
        self.expiration_time = match.group("expirationTime")
        self.not_before = match.group("notBefore")
        self.request_id = match.group("requestId")
        self.resources = None
        if match.group("resources"):
            self.resources = match.group("resources").split("\n- ")[1:]

    def fields(self) -> Dict[str, Any]:
        """Return the parsed fields, omitting the ones absent from the message."""
        return {key: value for key, value in vars(self).items() if value is not None}
