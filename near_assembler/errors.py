"""Error kinds raised while assembling, signing and submitting transactions.

RPC-level failures (including the expected ``AccountNotFoundError`` branch)
live in :mod:`near_assembler.rpc_client`; configuration problems raise
:class:`near_assembler.config.ConfigurationError`.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for terminal failures of a pipeline run."""


class InvalidInputError(ValueError):
    """Raised when a value fails its field validation."""


class PromptAbortedError(PipelineError):
    """Raised when the operator aborts an interactive prompt."""


class PermissionDeniedError(PipelineError):
    """Raised when the signer is not allowed to perform the requested action."""


class ConstructionError(PipelineError):
    """Raised when an action chain cannot be built from the supplied input."""


class ConstructionInvariantViolation(AssertionError):
    """Raised on programming defects in the stage or action chain wiring.

    Examples are an action chain without a terminal node, a stage reading a
    field no earlier stage contributed, or a stage overwriting earlier state.
    """


class SignerAccountMissingError(PipelineError):
    """Raised when the signer account does not exist on the selected network."""

    def __init__(self, signer_id: str, network_name: str) -> None:
        super().__init__(
            f"Signer account <{signer_id}> does not currently exist on network <{network_name}>."
        )
        self.signer_id = signer_id
        self.network_name = network_name


class AccountAlreadyExistsError(PipelineError):
    """Raised when an account scheduled for creation already exists."""

    def __init__(self, account_id: str, network_name: str) -> None:
        super().__init__(
            f"Account <{account_id}> already exists in network <{network_name}>. "
            "Therefore, it is not possible to create an account with this name."
        )
        self.account_id = account_id
        self.network_name = network_name


class TransactionFailedError(PipelineError):
    """Raised when a broadcast transaction finished with a failure status."""
