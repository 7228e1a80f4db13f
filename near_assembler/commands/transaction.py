"""``transaction construct-transaction``: an arbitrary chain of actions."""

from __future__ import annotations

from .common import AccountStage, ActionSelectionStage


def construct_transaction_stages() -> list:
    return [
        AccountStage("signer", "signer_account_id", "What is the signer account ID?"),
        AccountStage("receiver", "receiver_account_id", "What is the receiver account ID?", check=None),
        ActionSelectionStage("signer_account_id", "receiver_account_id"),
    ]
