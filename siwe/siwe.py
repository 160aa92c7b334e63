"""Main module for SIWE messages construction and validation."""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Union,
)

from eth_typing import ChecksumAddress
from pydantic import (
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    NonNegativeInt,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import core_schema
from typing_extensions import Annotated, TypedDict
from web3 import Web3
from web3.providers import AsyncBaseProvider, BaseProvider

from .errors import (
    DomainMismatch,
    ExpiredMessage,
    InvalidInputKeys,
    InvalidSignature,
    MalformedMessage,
    NonceMismatch,
    NotYetValidMessage,
    SchemeMismatch,
    VerificationError,
)
from .defs import AUTHORITY_CHARS, SCHEME_CHARS
from .parsed import ParsedMessage
from .utils import (
    check_contract_wallet_signature,
    check_invalid_keys,
    generate_nonce,
    recover_address,
)

logger = logging.getLogger(__name__)


class VersionEnum(str, Enum):
    """EIP-4361 versions."""

    one = "1"

    def __str__(self):
        """EIP-4361 representation of the enum field."""
        return self.value


# NOTE: Do not override the original uri string, just do validation
# https://github.com/pydantic/pydantic/issues/7186#issuecomment-1874338146
AnyUrlTypeAdapter = TypeAdapter(AnyUrl)
AnyUrlStr = Annotated[
    str,
    BeforeValidator(lambda value: AnyUrlTypeAdapter.validate_python(value) and value),
]


def datetime_from_iso8601_string(val: str) -> datetime:
    """Convert an ISO-8601 Datetime string into a valid datetime object."""
    return datetime.fromisoformat(
        val.upper().replace(".000Z", "Z").replace("Z", "+00:00")
    )


# NOTE: Do not override the original string, but ensure we do timestamp validation
class ISO8601Datetime(str):
    """A special field class used to denote ISO-8601 Datetime strings."""

    def __init__(self, val: str):
        """Validate ISO-8601 string."""
        # NOTE: `self` is already this class, we are just running our validation here
        datetime_from_iso8601_string(val)

    @classmethod
    def __get_pydantic_core_schema__(cls, source, handler):
        """Create valid pydantic schema object for this type."""
        return core_schema.no_info_after_validator_function(
            cls, core_schema.str_schema()
        )

    @classmethod
    def from_datetime(
        cls, dt: datetime, timespec: str = "milliseconds"
    ) -> "ISO8601Datetime":
        """Create an ISO-8601 formatted string from a datetime object."""
        # NOTE: Only a useful classmethod for creating these objects
        return ISO8601Datetime(
            dt.astimezone(tz=timezone.utc)
            .isoformat(timespec=timespec)
            .replace("+00:00", "Z")
        )

    @property
    def _datetime(self) -> datetime:
        return datetime_from_iso8601_string(self)


def utc_now() -> datetime:
    """Get the current datetime as UTC timezone."""
    return datetime.now(tz=timezone.utc)


def _verification_time(value: Optional[Union[datetime, str]]) -> datetime:
    if value is None:
        return utc_now()
    if isinstance(value, str):
        value = datetime_from_iso8601_string(value)
    if value.tzinfo is None:
        # Naive datetimes are read as UTC
        value = value.replace(tzinfo=timezone.utc)
    return value


class VerifyParams(TypedDict, total=False):
    """Parameters of `SiweMessage.verify`, only `signature` is required."""

    signature: Union[str, bytes]
    scheme: str
    domain: str
    nonce: str
    time: Union[datetime, str]


VerificationFallback = Callable[
    [
        Mapping[str, Any],
        Mapping[str, Any],
        "SiweMessage",
        "asyncio.Future[SiweResponse]",
    ],
    Awaitable[Optional["SiweResponse"]],
]


class VerifyOpts(TypedDict, total=False):
    """Options of `SiweMessage.verify`."""

    suppress_exceptions: bool
    provider: Union[AsyncBaseProvider, BaseProvider]
    verification_fallback: VerificationFallback


VERIFY_PARAMS_KEYS = frozenset(VerifyParams.__annotations__)
VERIFY_OPTS_KEYS = frozenset(VerifyOpts.__annotations__)


class SiweMessage(BaseModel):
    """A Sign-in with Ethereum (EIP-4361) message.

    Build one either from its fields, `SiweMessage(domain=..., address=..., ...)`,
    or from its text with `SiweMessage.from_message(text)`. Both raise
    `MalformedMessage` if the result cannot be written as an EIP-4361 message.
    """

    model_config = ConfigDict(frozen=True)

    scheme: Optional[str] = Field(None, pattern=f"^{SCHEME_CHARS}$")
    """RFC 3986 URI scheme for the authority that is requesting the signing."""
    domain: str = Field(pattern=f"^{AUTHORITY_CHARS}$")
    """RFC 4501 dns authority that is requesting the signing."""
    address: ChecksumAddress
    """Ethereum address performing the signing conformant to capitalization encoded
    checksum specified in EIP-55 where applicable.
    """
    uri: AnyUrlStr
    """RFC 3986 URI referring to the resource that is the subject of the signing."""
    version: VersionEnum
    """Current version of the message."""
    chain_id: NonNegativeInt
    """EIP-155 Chain ID to which the session is bound, and the network where Contract
    Accounts must be resolved.
    """
    issued_at: ISO8601Datetime = Field(
        default_factory=lambda: ISO8601Datetime.from_datetime(utc_now())
    )
    """ISO 8601 datetime string of the current time."""
    nonce: str = Field(default_factory=generate_nonce, pattern="^[a-zA-Z0-9]{8,}$")
    """Randomized token used to prevent replay attacks, at least 8 alphanumeric
    characters. Use generate_nonce() to generate a secure nonce and store it for
    verification later.
    """
    statement: Optional[str] = None
    """Human-readable ASCII assertion that the user will sign, and it must not contain
    `\n`. An empty statement is kept distinct from an absent one.
    """
    expiration_time: Optional[ISO8601Datetime] = None
    """ISO 8601 datetime string that, if present, indicates when the signed
    authentication message is no longer valid.
    """
    not_before: Optional[ISO8601Datetime] = None
    """ISO 8601 datetime string that, if present, indicates when the signed
    authentication message will become valid.
    """
    request_id: Optional[str] = None
    """System-specific identifier that may be used to uniquely refer to the sign-in
    request.
    """
    resources: Optional[List[AnyUrlStr]] = None
    """List of information or references to information the user wishes to have resolved
    as part of authentication by the relying party. They are expressed as RFC 3986 URIs
    separated by `\n- `.
    """

    _serializers: ClassVar[Dict[VersionEnum, str]] = {VersionEnum.one: "to_message"}

    def __init__(self, **data: Any) -> None:
        """Assemble a message from its fields and check it is valid EIP-4361."""
        invalid_keys = check_invalid_keys(data, type(self).model_fields)
        if invalid_keys:
            raise InvalidInputKeys(
                expected=list(type(self).model_fields), received=invalid_keys
            )
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise MalformedMessage(str(e)) from e

        try:
            ParsedMessage(self.prepare_message())
        except ValueError as e:
            raise MalformedMessage(
                f"Fields do not form an EIP-4361 message: {e}"
            ) from e

    @field_validator("address")
    @classmethod
    def address_is_checksum_address(cls, v: str) -> str:
        """Validate the address follows EIP-55 formatting."""
        if not Web3.is_checksum_address(v):
            raise ValueError("Message `address` must be in EIP-55 format")
        return v

    @field_validator("nonce", mode="before")
    @classmethod
    def nonce_or_generate(cls, v: Optional[str]) -> str:
        """Generate a nonce when none is given."""
        return v or generate_nonce()

    @classmethod
    def from_message(cls, message: str) -> "SiweMessage":
        """Parse a message in its EIP-4361 format."""
        try:
            parsed_message = ParsedMessage(message)
        except ValueError as e:
            raise MalformedMessage(str(e)) from e

        # TODO There is some redundancy in the checks when deserialising a message.
        return cls(**parsed_message.fields())

    def prepare_message(self) -> str:
        """Serialize to the format matching the version of the message.

        It can then be passed to an EIP-191 signing function.

        :return: EIP-4361 formatted message, ready for EIP-191 signing.
        """
        serializer = self._serializers.get(self.version, "to_message")
        return getattr(self, serializer)()

    def to_message(self) -> str:
        """Serialize to the EIP-4361 format.

        Prefer `prepare_message()`, which picks the serializer for the version of
        the message.
        """
        header = f"{self.domain} wants you to sign in with your Ethereum account:"
        if self.scheme is not None:
            header = f"{self.scheme}://{header}"

        lines = [header, self.address, ""]
        if self.statement is not None:
            lines.append(self.statement)
        lines.append("")

        lines.extend(
            [
                f"URI: {self.uri}",
                f"Version: {self.version}",
                f"Chain ID: {self.chain_id}",
                f"Nonce: {self.nonce}",
                f"Issued At: {self.issued_at}",
            ]
        )

        if self.expiration_time is not None:
            lines.append(f"Expiration Time: {self.expiration_time}")

        if self.not_before is not None:
            lines.append(f"Not Before: {self.not_before}")

        if self.request_id is not None:
            lines.append(f"Request ID: {self.request_id}")

        if self.resources:
            lines.append("Resources:")
            lines.extend(f"- {resource}" for resource in self.resources)

        return "\n".join(lines)

    async def verify(
        self,
        params: Mapping[str, Any],
        opts: Optional[Mapping[str, Any]] = None,
    ) -> "SiweResponse":
        """Verify the validity of the message and its signature.

        :param params: `VerifyParams`. `signature` is the signature to check against
        the current message. `scheme`, `domain` and `nonce` are the values expected
        to be in the current message. `time` is used to check the expiry date and
        other dates fields, the current time by default.
        :param opts: `VerifyOpts`. `provider` is a Web3 provider able to perform a
        contract check, required to support Smart Contract Wallets implementing
        EIP-1271. `verification_fallback` is awaited alongside that check, with
        the params, the opts, this message and the pending check, and its response
        (if any) wins. With `suppress_exceptions`, failures are returned instead of
        raised.
        :return: A successful `SiweResponse`, or a failed one if exceptions are
        suppressed. Raises the `VerificationError` of the failure otherwise.
        """
        opts = {} if opts is None else opts
        suppress_exceptions = bool(opts.get("suppress_exceptions", False))

        try:
            response = await self._verify(params, opts)
        except VerificationError as error:
            logger.debug("Verification of %s failed: %s", self.address, error)
            if not suppress_exceptions:
                raise
            return SiweResponse(success=False, data=self, error=error)

        if not response.success and not suppress_exceptions:
            raise response.error or InvalidSignature(expected=self.address)
        return response

    async def _verify(
        self, params: Mapping[str, Any], opts: Mapping[str, Any]
    ) -> "SiweResponse":
        invalid_params = check_invalid_keys(params, VERIFY_PARAMS_KEYS)
        if invalid_params:
            raise InvalidInputKeys(
                expected=sorted(VERIFY_PARAMS_KEYS), received=invalid_params
            )
        invalid_opts = check_invalid_keys(opts, VERIFY_OPTS_KEYS)
        if invalid_opts:
            raise InvalidInputKeys(
                expected=sorted(VERIFY_OPTS_KEYS), received=invalid_opts
            )
        if params.get("signature") is None:
            raise InvalidInputKeys(expected=["signature"], received=list(params))

        signature = params["signature"]
        scheme = params.get("scheme")
        domain = params.get("domain")
        nonce = params.get("nonce")

        if scheme is not None and self.scheme != scheme:
            raise SchemeMismatch(expected=scheme, received=self.scheme)
        if domain is not None and self.domain != domain:
            raise DomainMismatch(expected=domain, received=self.domain)
        if nonce is not None and self.nonce != nonce:
            raise NonceMismatch(expected=nonce, received=self.nonce)

        verification_time = _verification_time(params.get("time"))
        if (
            self.expiration_time is not None
            and verification_time >= self.expiration_time._datetime
        ):
            raise ExpiredMessage(
                expected=self.expiration_time,
                received=ISO8601Datetime.from_datetime(verification_time),
            )
        if (
            self.not_before is not None
            and verification_time < self.not_before._datetime
        ):
            raise NotYetValidMessage(
                expected=self.not_before,
                received=ISO8601Datetime.from_datetime(verification_time),
            )

        message = self.prepare_message()

        try:
            address = recover_address(message, signature)
        except Exception as e:
            logger.warning("Could not recover an address from the signature: %s", e)
            address = None

        if address == self.address:
            return SiweResponse(success=True, data=self)

        contract_wallet_proof = asyncio.ensure_future(
            self._check_contract_wallet(message, signature, address, opts.get("provider"))
        )
        fallback = opts.get("verification_fallback")
        if fallback is None:
            return await contract_wallet_proof

        contract_wallet_response, fallback_response = await asyncio.gather(
            contract_wallet_proof,
            self._run_fallback(
                fallback, params, opts, contract_wallet_proof, address
            ),
        )
        if fallback_response is not None:
            return fallback_response
        return contract_wallet_response

    async def _check_contract_wallet(
        self,
        message: str,
        signature: Union[str, bytes],
        recovered: Optional[str],
        provider: Optional[Union[AsyncBaseProvider, BaseProvider]],
    ) -> "SiweResponse":
        error = InvalidSignature(expected=self.address, received=recovered)
        try:
            if await check_contract_wallet_signature(
                address=self.address,
                message=message,
                signature=signature,
                provider=provider,
            ):
                return SiweResponse(success=True, data=self)
        except Exception as e:
            logger.warning("EIP-1271 check of %s failed: %s", self.address, e)
            error.__cause__ = e
        return SiweResponse(success=False, data=self, error=error)

    async def _run_fallback(
        self,
        fallback: VerificationFallback,
        params: Mapping[str, Any],
        opts: Mapping[str, Any],
        contract_wallet_proof: "asyncio.Future[SiweResponse]",
        recovered: Optional[str],
    ) -> Optional["SiweResponse"]:
        try:
            return await fallback(params, opts, self, contract_wallet_proof)
        except VerificationError as error:
            return SiweResponse(success=False, data=self, error=error)
        except Exception as e:
            logger.warning("Verification fallback for %s failed: %s", self.address, e)
            error = InvalidSignature(expected=self.address, received=recovered)
            error.__cause__ = e
            return SiweResponse(success=False, data=self, error=error)


class SiweResponse(BaseModel):
    """Outcome of a `SiweMessage.verify` call."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool
    data: SiweMessage
    error: Optional[VerificationError] = None
