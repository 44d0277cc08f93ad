"""
Ledger service with provider abstraction.

The engines talk to the TON blockchain only through ``LedgerService``. The
shipped provider, ``SimulatedLedger``, validates inputs exactly like a real
client would and fabricates transaction hashes and SBT token ids.
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

from tonedu.ledger.address_validation import is_valid_ton_address

logger = structlog.get_logger()

DEFAULT_ISSUER = "TON EDUCATION"
SBT_STANDARD = "TON SBT"


@dataclass(frozen=True)
class TransferResult:
    success: bool
    tx_hash: str | None = None
    amount: float | None = None
    error: str | None = None


@dataclass(frozen=True)
class MintResult:
    success: bool
    token_id: str | None = None
    tx_hash: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class LedgerService(ABC):
    """Abstract blockchain operations used by the reward and certificate engines."""

    @abstractmethod
    def is_valid_address(self, address: str | None) -> bool:
        """True if ``address`` is a usable recipient on this ledger's network."""

    @abstractmethod
    async def transfer(self, to_address: str, amount: float, memo: str | None = None) -> TransferResult:
        """Send ``amount`` TON. Failures are reported in the result, never raised."""

    @abstractmethod
    async def mint_certificate(self, to_address: str, metadata: dict[str, Any]) -> MintResult:
        """Mint a soulbound certificate token. Failures are reported in the result."""


def build_sbt_metadata(to_address: str, metadata: dict[str, Any]) -> dict[str, Any]:
    """Complete caller metadata with the SBT defaults.

    Keys under ``additional_metadata`` are merged into the top level last.
    """
    course_title = metadata.get("course_title", "")
    complete: dict[str, Any] = {
        "name": metadata.get("name", ""),
        "course_title": course_title,
        "issued_date": metadata.get("issued_date"),
        "template_id": metadata.get("template_id") or "default",
        "description": metadata.get("description") or f"Certificate of completion for {course_title}",
        "skills": list(metadata.get("skills") or []),
        "issuer": metadata.get("issuer") or DEFAULT_ISSUER,
        "certificate_type": metadata.get("certificate_type") or "completion",
        "background_color": metadata.get("background_color") or "#f8fafc",
        "border_color": metadata.get("border_color") or "#0ea5e9",
        "valid_until": metadata.get("valid_until"),
        "recipient": to_address,
        "issued_on": "TON Blockchain",
        "standard": SBT_STANDARD,
    }
    complete.update(metadata.get("additional_metadata") or {})
    return complete


class SimulatedLedger(LedgerService):
    """In-process stand-in for a TON wallet client.

    Randomness comes from the injected ``rng`` so tests can pin hashes and
    token ids with a seed.
    """

    def __init__(
        self,
        rng: random.Random,
        distribution_wallet: str,
        network: str = "testnet",
        delay_seconds: float = 0.05,
    ) -> None:
        self.rng = rng
        self.distribution_wallet = distribution_wallet
        self.network = network
        self.delay_seconds = delay_seconds

    def is_valid_address(self, address: str | None) -> bool:
        return is_valid_ton_address(address, self.network)

    def _tx_hash(self) -> str:
        return "0x" + "".join(self.rng.choice("0123456789abcdef") for _ in range(64))

    def _configuration_error(self) -> str | None:
        if not self.distribution_wallet:
            return "TON wallet not configured. Missing distribution wallet address."
        return None

    async def _simulate_latency(self) -> None:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

    async def transfer(self, to_address: str, amount: float, memo: str | None = None) -> TransferResult:
        if not self.is_valid_address(to_address):
            return TransferResult(success=False, error="Invalid recipient address")
        if amount <= 0:
            return TransferResult(success=False, error="Amount must be greater than 0")
        config_error = self._configuration_error()
        if config_error:
            return TransferResult(success=False, error=config_error)

        await self._simulate_latency()
        tx_hash = self._tx_hash()
        logger.info(
            "ledger_transfer",
            to=to_address,
            amount=amount,
            memo=memo,
            tx_hash=tx_hash,
            network=self.network,
        )
        return TransferResult(success=True, tx_hash=tx_hash, amount=amount)

    async def mint_certificate(self, to_address: str, metadata: dict[str, Any]) -> MintResult:
        if not self.is_valid_address(to_address):
            return MintResult(success=False, error="Invalid recipient address")
        config_error = self._configuration_error()
        if config_error:
            return MintResult(success=False, error=config_error)

        complete = build_sbt_metadata(to_address, metadata)
        await self._simulate_latency()
        token_id = str(self.rng.randint(1000, 9999))
        tx_hash = self._tx_hash()
        logger.info("ledger_mint", to=to_address, token_id=token_id, tx_hash=tx_hash, network=self.network)
        return MintResult(success=True, token_id=token_id, tx_hash=tx_hash, metadata=complete)
