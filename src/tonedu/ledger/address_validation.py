"""
TON address format validation.

Supports the raw form (``0:<64 hex>`` / ``-1:<64 hex>``) and the 48-character
user-friendly form in either base64 or base64url encoding:

    1 byte  flags       0x11 bounceable, 0x51 non-bounceable, |0x80 test-only
    1 byte  workchain   signed, 0x00 basechain or 0xff masterchain
    32 bytes account id
    2 bytes CRC16-XMODEM of the preceding 34 bytes, big-endian

Test-only addresses are rejected on mainnet.
"""

from __future__ import annotations

import base64
import binascii
import re

BOUNCEABLE_TAG = 0x11
NON_BOUNCEABLE_TAG = 0x51
TEST_FLAG = 0x80

_VALID_WORKCHAINS = frozenset({0, -1})
_RAW_RE = re.compile(r"^(-?\d+):([0-9a-fA-F]{64})$")
_FRIENDLY_RE = re.compile(r"^[A-Za-z0-9+/_-]{48}$")


def crc16_xmodem(data: bytes) -> int:
    """CRC16 with polynomial 0x1021 and zero initial value."""
    crc = 0
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else (crc << 1)
            crc &= 0xFFFF
    return crc


def validate_ton_address(address: str, network: str = "mainnet") -> bool:
    """
    Validate a TON address.

    Args:
        address: Raw or user-friendly address string.
        network: "mainnet" or "testnet". Test-only friendly addresses are
            accepted on testnet only.

    Returns:
        True if the address is valid.

    Raises:
        ValueError: If the address is malformed, has a bad checksum, or
            targets an unsupported workchain.
    """
    if not address or not isinstance(address, str):
        msg = "Address must be a non-empty string"
        raise ValueError(msg)

    if ":" in address:
        return _validate_raw(address)
    return _validate_friendly(address, network)


def is_valid_ton_address(address: str | None, network: str = "mainnet") -> bool:
    """Boolean form of validate_ton_address()."""
    if address is None:
        return False
    try:
        return validate_ton_address(address, network)
    except ValueError:
        return False


def encode_friendly_address(
    workchain: int,
    account_id: bytes,
    *,
    bounceable: bool = True,
    testnet: bool = False,
    url_safe: bool = True,
) -> str:
    """Encode a workchain/account id pair in the 48-character friendly form."""
    if workchain not in _VALID_WORKCHAINS:
        msg = f"Unsupported workchain: {workchain}"
        raise ValueError(msg)
    if len(account_id) != 32:
        msg = "Account id must be 32 bytes"
        raise ValueError(msg)
    tag = BOUNCEABLE_TAG if bounceable else NON_BOUNCEABLE_TAG
    if testnet:
        tag |= TEST_FLAG
    body = bytes([tag, workchain & 0xFF]) + account_id
    payload = body + crc16_xmodem(body).to_bytes(2, "big")
    encoder = base64.urlsafe_b64encode if url_safe else base64.b64encode
    return encoder(payload).decode("ascii")


def _validate_raw(address: str) -> bool:
    """Validate ``<workchain>:<hex account id>``."""
    match = _RAW_RE.match(address)
    if match is None:
        msg = "Raw address must be <workchain>:<64 hex characters>"
        raise ValueError(msg)
    workchain = int(match.group(1))
    if workchain not in _VALID_WORKCHAINS:
        msg = f"Unsupported workchain: {workchain}"
        raise ValueError(msg)
    return True


def _validate_friendly(address: str, network: str) -> bool:
    """Validate a base64/base64url friendly address."""
    if not _FRIENDLY_RE.match(address):
        msg = "Friendly address must be 48 base64 characters"
        raise ValueError(msg)
    if any(c in address for c in "-_") and any(c in address for c in "+/"):
        msg = "Friendly address mixes base64 and base64url alphabets"
        raise ValueError(msg)

    standard = address.replace("-", "+").replace("_", "/")
    try:
        decoded = base64.b64decode(standard, validate=True)
    except binascii.Error as e:
        msg = f"Invalid base64 address: {e}"
        raise ValueError(msg) from e
    if len(decoded) != 36:
        msg = "Invalid friendly address decoded length"
        raise ValueError(msg)

    body, checksum = decoded[:34], decoded[34:]
    if int.from_bytes(checksum, "big") != crc16_xmodem(body):
        msg = "Invalid friendly address checksum"
        raise ValueError(msg)

    tag = body[0]
    if tag & ~TEST_FLAG not in (BOUNCEABLE_TAG, NON_BOUNCEABLE_TAG):
        msg = f"Unknown address tag: {tag:#04x}"
        raise ValueError(msg)
    if tag & TEST_FLAG and network == "mainnet":
        msg = "Test-only addresses are not accepted on mainnet"
        raise ValueError(msg)

    workchain = body[1] - 256 if body[1] > 127 else body[1]
    if workchain not in _VALID_WORKCHAINS:
        msg = f"Unsupported workchain: {workchain}"
        raise ValueError(msg)
    return True
