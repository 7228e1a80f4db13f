"""Deferred callbacks registered by stages and invoked once the network is known.

Callbacks are small frozen dataclasses capturing the state their stage needs
by value. Each role has exactly one call signature:

``AfterNetworkSelected(network) -> PrepopulatedTransaction``
``BeforeSigning(unsigned_transaction, network) -> None``
``BeforeSending(signed_transaction, network, display_message) -> None``
``AfterSending(outcome, network) -> None``

View-only commands register a single :class:`AfterBlockSelected` instead,
invoked with the network and the block the query should read.

Only the execution driver invokes them, through :class:`CallbackInvoker`,
which refuses a second invocation of the same role.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from .accounts import validate_signer_account_id
from .actions import PrepopulatedTransaction
from .config import NetworkConfig
from .errors import ConstructionInvariantViolation

if TYPE_CHECKING:  # pragma: no cover
    from .action_chain import ActionNode
    from .broadcaster import TransactionOutcome
    from .rpc_client import BlockReference
    from .signer import SignedTransaction, Transaction

logger = logging.getLogger(__name__)


class CallbackRole(Enum):
    AFTER_NETWORK_SELECTED = "after_network_selected"
    BEFORE_SIGNING = "before_signing"
    BEFORE_SENDING = "before_sending"
    AFTER_SENDING = "after_sending"


class AfterNetworkSelected(ABC):
    @abstractmethod
    def __call__(self, network: NetworkConfig) -> PrepopulatedTransaction:
        ...


class BeforeSigning(ABC):
    @abstractmethod
    def __call__(self, unsigned_transaction: "Transaction", network: NetworkConfig) -> None:
        ...


class BeforeSending(ABC):
    @abstractmethod
    def __call__(
        self,
        signed_transaction: "SignedTransaction",
        network: NetworkConfig,
        display_message: list[str],
    ) -> None:
        ...


class AfterSending(ABC):
    @abstractmethod
    def __call__(self, outcome: "TransactionOutcome", network: NetworkConfig) -> None:
        ...


class AfterBlockSelected(ABC):
    @abstractmethod
    def __call__(self, network: NetworkConfig, block_reference: "BlockReference") -> None:
        ...


ROLE_TYPES: dict[CallbackRole, type] = {
    CallbackRole.AFTER_NETWORK_SELECTED: AfterNetworkSelected,
    CallbackRole.BEFORE_SIGNING: BeforeSigning,
    CallbackRole.BEFORE_SENDING: BeforeSending,
    CallbackRole.AFTER_SENDING: AfterSending,
}


@dataclass(frozen=True)
class NoOpBeforeSigning(BeforeSigning):
    def __call__(self, unsigned_transaction, network) -> None:
        return None


@dataclass(frozen=True)
class NoOpBeforeSending(BeforeSending):
    def __call__(self, signed_transaction, network, display_message) -> None:
        return None


@dataclass(frozen=True)
class NoOpAfterSending(AfterSending):
    def __call__(self, outcome, network) -> None:
        return None


_DEFAULTS = {
    CallbackRole.BEFORE_SIGNING: NoOpBeforeSigning,
    CallbackRole.BEFORE_SENDING: NoOpBeforeSending,
    CallbackRole.AFTER_SENDING: NoOpAfterSending,
}


@dataclass(frozen=True)
class MaterializeActionChain(AfterNetworkSelected):
    """Check the signer exists, then turn the action chain into a transaction."""

    signer_id: str
    receiver_id: str
    chain: "ActionNode"

    def __call__(self, network: NetworkConfig) -> PrepopulatedTransaction:
        validate_signer_account_id(network, self.signer_id)
        return PrepopulatedTransaction(
            signer_id=self.signer_id,
            receiver_id=self.receiver_id,
            actions=self.chain.actions(),
        )


@dataclass(frozen=True)
class PrintTransactionSummary(BeforeSigning):
    """Show the operator what is about to be signed."""

    def __call__(self, unsigned_transaction: "Transaction", network: NetworkConfig) -> None:
        print(f"\nUnsigned transaction on network <{network.network_name}>:")
        for line in unsigned_transaction.prepopulated.summary_lines():
            print(f"  {line}")


@dataclass(frozen=True)
class CallbackRegistry:
    """The four callback slots carried by a stage context."""

    after_network_selected: AfterNetworkSelected | None = None
    before_signing: BeforeSigning | None = None
    before_sending: BeforeSending | None = None
    after_sending: AfterSending | None = None

    def get(self, role: CallbackRole) -> Any:
        return getattr(self, role.value)

    def register(self, role: CallbackRole, callback: Any) -> "CallbackRegistry":
        """Return a registry with ``callback`` in the ``role`` slot."""

        if not isinstance(callback, ROLE_TYPES[role]):
            raise ConstructionInvariantViolation(
                f"{type(callback).__name__} cannot be registered as {role.value}"
            )
        if self.get(role) is not None:
            raise ConstructionInvariantViolation(f"{role.value} callback is already registered")
        return replace(self, **{role.value: callback})

    def with_defaults(self) -> "CallbackRegistry":
        """Fill every empty slot except AfterNetworkSelected with a no-op."""

        registry = self
        for role, factory in _DEFAULTS.items():
            if registry.get(role) is None:
                registry = registry.register(role, factory())
        return registry

    def missing_roles(self) -> list[CallbackRole]:
        return [role for role in CallbackRole if self.get(role) is None]

    def contains(self, other: "CallbackRegistry") -> bool:
        """True when every slot filled in ``other`` holds the same callback here."""

        return all(
            other.get(role) is None or other.get(role) is self.get(role) for role in CallbackRole
        )


class CallbackInvoker:
    """Invoke each role of a complete registry at most once."""

    def __init__(self, registry: CallbackRegistry) -> None:
        missing = registry.missing_roles()
        if missing:
            raise ConstructionInvariantViolation(
                "callback registry is incomplete: " + ", ".join(role.value for role in missing)
            )
        self._registry = registry
        self._invoked: set[CallbackRole] = set()

    def invoke(self, role: CallbackRole, *args: Any) -> Any:
        if role in self._invoked:
            raise ConstructionInvariantViolation(f"{role.value} callback was already invoked")
        self._invoked.add(role)
        callback = self._registry.get(role)
        logger.debug("Invoking %s callback %s", role.value, type(callback).__name__)
        return callback(*args)

    @property
    def invoked(self) -> frozenset[CallbackRole]:
        return frozenset(self._invoked)
