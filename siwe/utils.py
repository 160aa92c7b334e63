"""Nonce generation, input checks and the Ethereum signature helpers."""

import asyncio
import logging
import secrets
import string
from typing import Any, Collection, List, Mapping, Optional, Union

from eth_account import Account
from eth_account.messages import _hash_eip191_message, encode_defunct
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError
from web3.providers import AsyncBaseProvider, BaseProvider

logger = logging.getLogger(__name__)

EIP1271_CONTRACT_ABI = [
    {
        "inputs": [
            {"internalType": "bytes32", "name": "_message", "type": "bytes32"},
            {"internalType": "bytes", "name": "_signature", "type": "bytes"},
        ],
        "name": "isValidSignature",
        "outputs": [{"internalType": "bytes4", "name": "", "type": "bytes4"}],
        "stateMutability": "view",
        "type": "function",
    }
]
EIP1271_MAGICVALUE = "1626ba7e"


_ALPHANUMERICS = string.ascii_letters + string.digits


def generate_nonce() -> str:
    """Generate a cryptographically sound nonce."""
    return "".join(secrets.choice(_ALPHANUMERICS) for _ in range(11))


def check_invalid_keys(record: Mapping[str, Any], valid_keys: Collection[str]) -> List[str]:
    """Return the keys of `record` which are not part of `valid_keys`."""
    return [key for key in record if key not in valid_keys]


def recover_address(message: str, signature: Union[str, bytes]) -> ChecksumAddress:
    """Recover the address which produced an EIP-191 signature of `message`.

    :param message: EIP-4361 formatted message.
    :param signature: The signature, as hex string or raw bytes.
    :return: The checksummed address of the signer.
    """
    return Account.recover_message(
        encode_defunct(text=message), signature=HexBytes(signature)
    )


async def check_contract_wallet_signature(
    address: ChecksumAddress,
    message: str,
    signature: Union[str, bytes],
    provider: Optional[Union[AsyncBaseProvider, BaseProvider]],
) -> bool:
    """Call the EIP-1271 method for a Smart Contract wallet.

    Reverts and empty responses mean the address is not a wallet accepting this
    signature and yield False, provider errors are left to propagate.

    :param address: The address of the contract
    :param message: The EIP-4361 formatted message
    :param signature: The EIP-1271 signature
    :param provider: A Web3 provider able to perform a contract check, either
    synchronous (e.g. `HTTPProvider`) or asynchronous (e.g. `AsyncHTTPProvider`).
    :return: True if the signature is valid per EIP-1271.
    """
    if provider is None:
        return False

    hash_ = _hash_eip191_message(encode_defunct(text=message))
    signature_bytes = bytes(HexBytes(signature))
    try:
        if isinstance(provider, AsyncBaseProvider):
            w3 = AsyncWeb3(provider)
            contract = w3.eth.contract(address=address, abi=EIP1271_CONTRACT_ABI)
            response = await contract.functions.isValidSignature(
                hash_, signature_bytes
            ).call()
        else:
            w3 = Web3(provider)
            contract = w3.eth.contract(address=address, abi=EIP1271_CONTRACT_ABI)
            response = await asyncio.to_thread(
                contract.functions.isValidSignature(hash_, signature_bytes).call
            )
    except (BadFunctionCallOutput, ContractLogicError) as e:
        logger.debug("%s rejected the EIP-1271 call: %s", address, e)
        return False

    return bytes(response)[:4].hex() == EIP1271_MAGICVALUE
