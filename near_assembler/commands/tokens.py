"""``tokens`` commands."""

from __future__ import annotations

from ..action_chain import ActionKind
from .common import AccountStage, SingleActionStage


def send_near_stages() -> list:
    return [
        AccountStage("signer", "signer_account_id", "What is the signer account ID?"),
        AccountStage("receiver", "receiver_account_id", "What is the receiver account ID?"),
        SingleActionStage("amount", ActionKind.TRANSFER, "signer_account_id", "receiver_account_id"),
    ]
