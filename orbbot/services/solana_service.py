"""
Solana ledger access

SolanaLedgerReader - raw account reads, wallet balances, claimable rewards
SolanaSubmitter    - sign, send and confirm one transaction

Instruction construction and key custody are not part of this module:
they are supplied through the InstructionBuilder and SignerProvider protocols.
"""

import asyncio
import importlib
from typing import Any, Optional, Protocol, Sequence

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TokenAccountOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from config.config import ORB_MINT, SOLANA_RPC_URL, TX_CONFIRM_TIMEOUT
from orbbot.core.enums import AccountKind
from orbbot.core.exceptions import SubmissionError
from orbbot.services.automation.decoder import (
    automation_status,
    decode_automation,
    decode_miner,
    decode_stake,
    derive_account_address,
)
from orbbot.services.automation.schemas import (
    AutomationPlan,
    AutomationStatus,
    Balances,
    EnrolledUser,
    RewardsSnapshot,
    RoundState,
)

ORB_DECIMALS = 9


class InstructionBuilder(Protocol):
    """
    Program-specific collaborator: builds the instructions for each action
    kind and reads the board and treasury state of the current round.
    """

    async def claim_sol(self, owner: Pubkey) -> Sequence[Instruction]: ...

    async def claim_orb(self, owner: Pubkey) -> Sequence[Instruction]: ...

    async def claim_yield(self, owner: Pubkey, amount: int) -> Sequence[Instruction]: ...

    async def swap(
        self, owner: Pubkey, amount: int, slippage_bps: int
    ) -> Sequence[Instruction]: ...

    async def stake(self, owner: Pubkey, amount: int) -> Sequence[Instruction]: ...

    async def transfer(
        self, owner: Pubkey, recipient: Pubkey, amount: int
    ) -> Sequence[Instruction]: ...

    async def current_round(self) -> RoundState: ...

    async def execute_automation(self, owner: Pubkey) -> Sequence[Instruction]: ...

    async def close_automation(self, owner: Pubkey) -> Sequence[Instruction]: ...

    async def open_automation(
        self, owner: Pubkey, plan: AutomationPlan
    ) -> Sequence[Instruction]: ...


class SignerProvider(Protocol):
    """Returns the signing keypair for a user, None if no wallet is stored."""

    async def get_signer(self, user: EnrolledUser) -> Optional[Keypair]: ...


def load_object(path: str) -> Any:
    """
    Import an object from "package.module:attribute"

    Args:
        path: Dotted module path and attribute name

    Returns:
        The attribute
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'package.module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)


def normalize_token_amount(raw_amount: int, decimals: int) -> int:
    """Rescale a raw SPL amount to 9-decimal base units."""
    if decimals == ORB_DECIMALS:
        return raw_amount
    if decimals < ORB_DECIMALS:
        return raw_amount * 10 ** (ORB_DECIMALS - decimals)
    return raw_amount // 10 ** (decimals - ORB_DECIMALS)


class SolanaLedgerReader:
    """Read-only view of user accounts."""

    def __init__(self, client: AsyncClient, orb_mint: str = ORB_MINT):
        self.client = client
        self.orb_mint = Pubkey.from_string(orb_mint)

    async def read_account(self, kind: AccountKind, owner: Pubkey) -> Optional[bytes]:
        address = derive_account_address(kind, owner)
        response = await self.client.get_account_info(address, commitment=Confirmed)
        if response.value is None:
            return None
        return bytes(response.value.data)

    async def get_balances(self, owner: Pubkey) -> Balances:
        sol = await self.client.get_balance(owner, commitment=Confirmed)
        tokens = await self.client.get_token_accounts_by_owner_json_parsed(
            owner, TokenAccountOpts(mint=self.orb_mint), commitment=Confirmed
        )

        orb = 0
        for account in tokens.value:
            token_amount = account.account.data.parsed["info"]["tokenAmount"]
            orb += normalize_token_amount(
                int(token_amount["amount"]), int(token_amount["decimals"])
            )

        return Balances(sol=sol.value, orb=orb)

    async def get_automation_status(self, owner: Pubkey) -> AutomationStatus:
        data = await self.read_account(AccountKind.AUTOMATION, owner)
        return automation_status(decode_automation(data))

    async def get_claimable_rewards(self, owner: Pubkey) -> RewardsSnapshot:
        miner = decode_miner(await self.read_account(AccountKind.MINER, owner))
        stake = decode_stake(await self.read_account(AccountKind.STAKE, owner))
        return RewardsSnapshot(
            mining_sol=miner.rewards_sol if miner else 0,
            mining_orb=miner.rewards_orb if miner else 0,
            staking_sol=stake.rewards_sol if stake else 0,
            staking_orb=stake.rewards_orb if stake else 0,
        )


class SolanaSubmitter:
    """Signs, sends and confirms one transaction per call."""

    def __init__(self, client: AsyncClient, confirm_timeout: float = TX_CONFIRM_TIMEOUT):
        self.client = client
        self.confirm_timeout = confirm_timeout

    async def submit(self, instructions: Sequence[Instruction], signer: Keypair) -> str:
        """
        Submit instructions as a single transaction

        Args:
            instructions: Instructions for one action
            signer: Fee payer and sole signer

        Returns:
            Transaction signature (base58)

        Raises:
            SubmissionError: Rejected, RPC failure or not confirmed in time
        """
        try:
            return await asyncio.wait_for(
                self._send_and_confirm(list(instructions), signer),
                timeout=self.confirm_timeout,
            )
        except SubmissionError:
            raise
        except asyncio.TimeoutError as e:
            raise SubmissionError(
                f"Transaction not confirmed within {self.confirm_timeout:.0f}s"
            ) from e
        except Exception as e:
            logger.warning(f"Transaction submission failed: {e}")
            raise SubmissionError(str(e)) from e

    async def _send_and_confirm(self, instructions: list[Instruction], signer: Keypair) -> str:
        latest = await self.client.get_latest_blockhash(commitment=Confirmed)
        blockhash = latest.value.blockhash

        message = Message.new_with_blockhash(instructions, signer.pubkey(), blockhash)
        transaction = Transaction([signer], message, blockhash)

        sent = await self.client.send_transaction(transaction)
        signature = sent.value

        confirmation = await self.client.confirm_transaction(signature, commitment=Confirmed)
        status = confirmation.value[0] if confirmation.value else None
        if status is not None and status.err is not None:
            raise SubmissionError(f"Transaction {signature} failed: {status.err}")

        return str(signature)


def create_client(rpc_url: str = SOLANA_RPC_URL) -> AsyncClient:
    return AsyncClient(rpc_url, commitment=Confirmed)
