"""Deliver signed transactions: over RPC, or printed for offline submission."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from . import rpc_client
from .config import NetworkConfig
from .signer import SignedTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionOutcome:
    """What happened to a signed transaction.

    ``submitted`` is False when the transaction was only displayed; such an
    outcome is neither a success nor a failure.
    """

    transaction_hash: str
    status: Mapping[str, Any] = field(default_factory=dict)
    raw: Mapping[str, Any] | None = None
    submitted: bool = True

    @property
    def is_success(self) -> bool:
        return self.submitted and (
            "SuccessValue" in self.status or "SuccessReceiptId" in self.status
        )

    @property
    def is_failure(self) -> bool:
        return self.submitted and not self.is_success

    def failure_message(self) -> str:
        failure = self.status.get("Failure", self.status)
        return json.dumps(failure, sort_keys=True)


class Broadcaster(ABC):
    @abstractmethod
    def broadcast(self, signed: SignedTransaction, network: NetworkConfig) -> TransactionOutcome:
        ...


class RpcBroadcaster(Broadcaster):
    """Submit with ``broadcast_tx_commit`` and wait for the final outcome."""

    def broadcast(self, signed: SignedTransaction, network: NetworkConfig) -> TransactionOutcome:
        client = rpc_client.client_for_network(network)
        logger.info("Broadcasting transaction %s to %s", signed.hash, network.network_name)
        result: Dict[str, Any] = client.broadcast_tx_commit(signed.to_base64()) or {}
        status = result.get("status")
        if not isinstance(status, dict):
            status = {"Unknown": status}
        transaction_hash = (result.get("transaction") or {}).get("hash") or signed.hash
        outcome = TransactionOutcome(transaction_hash, status, result)
        if outcome.is_success:
            logger.info("Transaction %s succeeded", transaction_hash)
        else:
            logger.warning("Transaction %s failed: %s", transaction_hash, outcome.failure_message())
        return outcome


class DisplayBroadcaster(Broadcaster):
    """Print the signed transaction instead of sending it."""

    def broadcast(self, signed: SignedTransaction, network: NetworkConfig) -> TransactionOutcome:
        print(f"\nSigned transaction for network <{network.network_name}> (not sent):")
        print(f"  hash:   {signed.hash}")
        print(f"  base64: {signed.to_base64()}")
        return TransactionOutcome(signed.hash, submitted=False)
