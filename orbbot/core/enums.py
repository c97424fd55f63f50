"""
Core Enums - shared types for the automation stack.

Defines:
- Platform: chat front end a user is enrolled through
- AccountKind: on-chain account layouts the decoder understands
- ActionKind: every action the executor can perform
- Stage: evaluation/execution stages of the per-user pipeline
- ActionClass: independently scheduled loops
- LoopStatus: per-loop state machine
"""

from enum import Enum


class Platform(str, Enum):
    """Chat platform a user talks to the bot through."""

    TELEGRAM = "telegram"
    DISCORD = "discord"


class AccountKind(str, Enum):
    """Program accounts derived per user (PDA seed = value)."""

    AUTOMATION = "automation"
    MINER = "miner"
    STAKE = "stake"


class ActionKind(str, Enum):
    """
    Executable actions. Evaluator kinds come first, in execution order;
    DEPLOY is issued by the round loop, once per mining round.
    """

    CLAIM_SOL = "claim_sol"
    CLAIM_ORB = "claim_orb"
    CLAIM_STAKE = "claim_stake"
    SWAP = "swap"
    STAKE = "stake"
    TRANSFER = "transfer"
    DEPLOY = "deploy"


class Stage(str, Enum):
    """
    Pipeline stages.

    Each stage re-reads ledger state and only executes its own action kinds.
    """

    CLAIM = "claim"
    SWAP = "swap"
    STAKE = "stake"
    TRANSFER = "transfer"

    @property
    def kinds(self) -> tuple[ActionKind, ...]:
        return _STAGE_KINDS[self]


_STAGE_KINDS = {
    Stage.CLAIM: (ActionKind.CLAIM_SOL, ActionKind.CLAIM_ORB, ActionKind.CLAIM_STAKE),
    Stage.SWAP: (ActionKind.SWAP,),
    Stage.STAKE: (ActionKind.STAKE,),
    Stage.TRANSFER: (ActionKind.TRANSFER,),
}


class ActionClass(str, Enum):
    """
    Scheduled loops. Transfer has no timer of its own:
    it runs at the end of every claim pass.
    """

    CLAIM = "claim"
    SWAP = "swap"
    STAKE = "stake"

    @property
    def stages(self) -> tuple[Stage, ...]:
        return _CLASS_STAGES[self]


_CLASS_STAGES = {
    ActionClass.CLAIM: (Stage.CLAIM, Stage.TRANSFER),
    ActionClass.SWAP: (Stage.SWAP,),
    ActionClass.STAKE: (Stage.STAKE,),
}


class LoopStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
