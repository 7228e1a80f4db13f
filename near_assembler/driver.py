"""Execution drivers: the only place that triggers network I/O and callbacks."""

from __future__ import annotations

import logging

from .broadcaster import Broadcaster, DisplayBroadcaster, RpcBroadcaster, TransactionOutcome
from .callbacks import CallbackInvoker, CallbackRole
from .config import NetworkConfig
from .context import StageContext
from .errors import ConstructionInvariantViolation, TransactionFailedError
from .signer import KeychainSigner, KeyPairSigner, Signer
from .submission import SIGN_WITH_KEYCHAIN, SIGN_WITH_PLAINTEXT, SUBMIT_DISPLAY, SUBMIT_SEND

logger = logging.getLogger(__name__)


def signer_from_context(context: StageContext) -> Signer:
    sign_with = context.value("sign_with")
    if sign_with == SIGN_WITH_KEYCHAIN:
        return KeychainSigner(context.config.credentials_home)
    if sign_with == SIGN_WITH_PLAINTEXT:
        return KeyPairSigner(context.value("signer_private_key"))
    raise ConstructionInvariantViolation(f"unknown signing tool <{sign_with}>")


def broadcaster_from_context(context: StageContext) -> Broadcaster:
    submit = context.value("submit")
    if submit == SUBMIT_SEND:
        return RpcBroadcaster()
    if submit == SUBMIT_DISPLAY:
        return DisplayBroadcaster()
    raise ConstructionInvariantViolation(f"unknown submit mode <{submit}>")


class ExecutionDriver:
    """Run a fully constructed context against its selected network.

    Order: AfterNetworkSelected, build transaction, BeforeSigning, sign,
    BeforeSending, broadcast, AfterSending. Any exception stops the run at the
    step that raised it; nothing is broadcast unless every earlier step passed.
    """

    def __init__(
        self,
        context: StageContext,
        *,
        signer: Signer | None = None,
        broadcaster: Broadcaster | None = None,
    ) -> None:
        self.context = context
        self.invoker = CallbackInvoker(context.callbacks)
        self.signer = signer or signer_from_context(context)
        self.broadcaster = broadcaster or broadcaster_from_context(context)

    def execute(self) -> TransactionOutcome:
        network = self.context.config.network(self.context.value("network"))
        logger.info("Executing on network %s (%s)", network.network_name, network.rpc_url)

        prepopulated = self.invoker.invoke(CallbackRole.AFTER_NETWORK_SELECTED, network)
        unsigned = self.signer.build_transaction(prepopulated, network)
        self.invoker.invoke(CallbackRole.BEFORE_SIGNING, unsigned, network)

        signed = self.signer.sign(unsigned, network)
        display_message: list[str] = []
        self.invoker.invoke(CallbackRole.BEFORE_SENDING, signed, network, display_message)

        outcome = self.broadcaster.broadcast(signed, network)
        for line in display_message:
            print(line)
        self.invoker.invoke(CallbackRole.AFTER_SENDING, outcome, network)

        if outcome.submitted:
            self._report(outcome, network)
        return outcome

    @staticmethod
    def _report(outcome: TransactionOutcome, network: NetworkConfig) -> None:
        if outcome.is_success:
            print(f"\nTransaction {outcome.transaction_hash} succeeded.")
        link = network.explorer_link(outcome.transaction_hash)
        if link:
            print(f"Explorer: {link}")

    def run(self) -> int:
        """Execute and return exit status 0, raising when the chain rejected the transaction."""

        outcome = self.execute()
        if outcome.is_failure:
            raise TransactionFailedError(
                f"Transaction <{outcome.transaction_hash}> failed on network "
                f"<{self.context.value('network')}>: {outcome.failure_message()}"
            )
        return 0


class ViewDriver:
    """Run a view-only context: one read against the selected network and block."""

    def __init__(self, context: StageContext) -> None:
        if context.view is None:
            raise ConstructionInvariantViolation("view-only run needs a view callback")
        self.context = context

    def run(self) -> int:
        network = self.context.config.network(self.context.value("network"))
        block_reference = self.context.value("block_reference")
        logger.info(
            "Reading from network %s at %s", network.network_name, block_reference.to_params()
        )
        self.context.view(network, block_reference)
        return 0


def driver_for(context: StageContext) -> ExecutionDriver | ViewDriver:
    """Pick the driver matching what the stages built."""

    if context.view is not None:
        return ViewDriver(context)
    return ExecutionDriver(context)
