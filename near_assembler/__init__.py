"""Staged assembly, signing and submission of NEAR transactions."""

from .action_chain import ActionKind, ActionNode, chain_from_actions
from .actions import PrepopulatedTransaction
from .callbacks import CallbackInvoker, CallbackRegistry, CallbackRole
from .config import Config, ConfigurationError, NetworkConfig, load_config
from .context import Stage, StageContext, run_stages
from .driver import ExecutionDriver, ViewDriver
from .errors import (
    AccountAlreadyExistsError,
    ConstructionError,
    ConstructionInvariantViolation,
    InvalidInputError,
    PermissionDeniedError,
    PipelineError,
    PromptAbortedError,
    SignerAccountMissingError,
    TransactionFailedError,
)
from .fields import Field, FieldResolver, FieldSource, FieldSpec

__all__ = [
    "AccountAlreadyExistsError",
    "ActionKind",
    "ActionNode",
    "CallbackInvoker",
    "CallbackRegistry",
    "CallbackRole",
    "Config",
    "ConfigurationError",
    "ConstructionError",
    "ConstructionInvariantViolation",
    "ExecutionDriver",
    "Field",
    "FieldResolver",
    "FieldSource",
    "FieldSpec",
    "InvalidInputError",
    "NetworkConfig",
    "PermissionDeniedError",
    "PipelineError",
    "PrepopulatedTransaction",
    "PromptAbortedError",
    "SignerAccountMissingError",
    "Stage",
    "StageContext",
    "TransactionFailedError",
    "ViewDriver",
    "chain_from_actions",
    "load_config",
    "run_stages",
]
