"""Account-state queries used by field resolution and network-bound callbacks."""

from __future__ import annotations

import logging
from typing import Any, Dict

from . import rpc_client
from .config import NetworkConfig
from .errors import AccountAlreadyExistsError, SignerAccountMissingError
from .rpc_client import AccountNotFoundError, BlockReference, RPCError, RPCTransportError

logger = logging.getLogger(__name__)


def get_account_state(
    network: NetworkConfig,
    account_id: str,
    block_reference: BlockReference | None = None,
) -> Dict[str, Any]:
    """Return the ``view_account`` result or raise ``AccountNotFoundError``."""

    client = rpc_client.client_for_network(network)
    return client.view_account(account_id, block_reference or BlockReference.latest())


def account_exists(network: NetworkConfig | None, account_id: str) -> bool | None:
    """Advisory existence check.

    Returns None when no network is known or the node could not answer, so
    callers never block the operator on a flaky connection.
    """

    if network is None:
        return None
    try:
        get_account_state(network, account_id)
    except AccountNotFoundError:
        return False
    except (RPCError, RPCTransportError) as exc:
        logger.warning(
            "Could not check whether <%s> exists on <%s>: %s", account_id, network.network_name, exc
        )
        return None
    return True


def validate_signer_account_id(network: NetworkConfig, signer_id: str) -> None:
    """Fail unless ``signer_id`` exists on ``network``."""

    try:
        get_account_state(network, signer_id)
    except AccountNotFoundError as exc:
        raise SignerAccountMissingError(signer_id, network.network_name) from exc


def validate_new_account_id(network: NetworkConfig, account_id: str) -> None:
    """Fail if ``account_id`` is already taken on ``network``."""

    try:
        get_account_state(network, account_id)
    except AccountNotFoundError:
        return
    raise AccountAlreadyExistsError(account_id, network.network_name)
