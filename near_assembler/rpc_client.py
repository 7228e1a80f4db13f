"""Typed JSON-RPC client for NEAR RPC nodes.

The client is deliberately thin: each helper maps onto one RPC method and
returns the parsed ``result`` payload. Its main job is the error taxonomy:
"account not found" and "access key not found" are expected branches of
existence checks and get their own exception types, distinct from every other
server error (:class:`RPCError`) and from transport failures
(:class:`RPCTransportError`).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

from .config import NetworkConfig

logger = logging.getLogger(__name__)


class RPCError(RuntimeError):
    """Raised when the NEAR node responds with an RPC error."""

    def __init__(
        self,
        code: int,
        message: str,
        *,
        name: str | None = None,
        cause: str | None = None,
        data: Any = None,
    ) -> None:
        detail = f": {data}" if isinstance(data, str) and data else ""
        label = cause or name or "error"
        super().__init__(f"RPC error {code} ({label}): {message}{detail}")
        self.code = code
        self.message = message
        self.name = name
        self.cause = cause
        self.data = data


class AccountNotFoundError(RPCError):
    """Raised when the queried account does not exist at the given block."""

    def __init__(self, requested_account_id: str, message: str = "account does not exist") -> None:
        super().__init__(-32000, message, name="HANDLER_ERROR", cause="UNKNOWN_ACCOUNT")
        self.requested_account_id = requested_account_id


class AccessKeyNotFoundError(RPCError):
    """Raised when the queried access key is not registered on the account."""

    def __init__(self, account_id: str, public_key: str, message: str = "access key does not exist") -> None:
        super().__init__(-32000, message, name="HANDLER_ERROR", cause="UNKNOWN_ACCESS_KEY")
        self.account_id = account_id
        self.public_key = public_key


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common NEAR JSON-RPC errors."""

    if error_obj is None:
        return None

    cause = None
    text = ""
    if isinstance(error_obj, RPCError):
        cause = error_obj.cause
        text = f"{error_obj.message} {error_obj.data or ''}"
    elif isinstance(error_obj, dict):
        cause_obj = error_obj.get("cause") or {}
        cause = cause_obj.get("name") if isinstance(cause_obj, dict) else None
        text = f"{error_obj.get('message', '')} {error_obj.get('data', '')}"

    if cause == "UNKNOWN_ACCOUNT":
        return "Check the account id for typos and make sure you selected the right network."
    if cause == "NO_CONTRACT_CODE":
        return "No contract is deployed on this account at the selected block."
    if cause == "UNKNOWN_ACCESS_KEY":
        return (
            "The signing key is not registered on the signer account on this network. "
            "Use a key listed by the account or sign with a different credential."
        )
    if cause == "TIMEOUT_ERROR":
        return (
            "The node timed out waiting for the transaction. It may still be included; "
            "look it up in the explorer before resubmitting."
        )
    if "InvalidNonce" in text:
        return "Another transaction used this access key at the same time; retry the command."
    if "NotEnoughBalance" in text or "LackBalanceForState" in text:
        return "The signer account does not hold enough NEAR to cover the deposit, gas and storage."
    return None


@dataclass(frozen=True)
class BlockReference:
    """Point in chain history a query is evaluated at."""

    finality: str | None = "final"
    block_id: int | str | None = None

    @classmethod
    def latest(cls) -> "BlockReference":
        return cls(finality="final")

    @classmethod
    def at_height(cls, height: int) -> "BlockReference":
        return cls(finality=None, block_id=int(height))

    def to_params(self) -> Dict[str, Any]:
        if self.block_id is not None:
            return {"block_id": self.block_id}
        return {"finality": self.finality or "final"}


class NearRPCClient:
    """Typed JSON-RPC client bound to one configured network."""

    def __init__(self, network: NetworkConfig, session: requests.Session | None = None) -> None:
        self.network = network
        self._session = session or requests.Session()
        self._url = network.rpc_url

    @classmethod
    def for_network(cls, network: NetworkConfig) -> "NearRPCClient":
        return cls(network)

    def call(self, method: str, params: Optional[Any] = None) -> Any:
        """Perform a JSON-RPC request and return its ``result``."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params if params is not None else [],
        }
        headers = {"content-type": "application/json"}
        if self.network.rpc_api_key:
            headers["x-api-key"] = self.network.rpc_api_key
        logger.debug("RPC call %s on %s params=%s", method, self.network.network_name, params)
        try:
            response = self._session.post(
                self._url,
                data=json.dumps(payload),
                headers=headers,
                timeout=30,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self._url} failed. Check your network connection and the "
                f"rpc_url configured for network <{self.network.network_name}>."
            ) from exc
        self._raise_for_status(response)
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned an unexpected response body")
        if result.get("error"):
            raise self._error_from_body(result["error"])
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        try:
            err_body = response.json()
        except ValueError:
            err_body = response.text
        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        logger.error("RPC error body: %s", err_body)
        if isinstance(err_body, dict) and err_body.get("error"):
            # Some providers report JSON-RPC handler errors with a non-200 status.
            raise self._error_from_body(err_body["error"])
        if response.status_code in (401, 403):
            raise RPCTransportError(
                f"Unauthorized ({response.status_code}). Set rpc_api_key for network "
                f"<{self.network.network_name}> if your RPC provider requires one.",
                status_code=response.status_code,
            )
        if response.status_code == 429:
            raise RPCTransportError(
                "RPC provider is rate limiting requests (429); wait and retry or configure another rpc_url.",
                status_code=response.status_code,
            )
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}; check the rpc_url for network "
            f"<{self.network.network_name}>.",
            status_code=response.status_code,
        )

    @staticmethod
    def _error_from_body(error: Any) -> RPCError:
        if not isinstance(error, dict):
            return RPCError(-1, str(error))
        cause_obj = error.get("cause") if isinstance(error.get("cause"), dict) else {}
        cause = cause_obj.get("name")
        info = cause_obj.get("info") or {}
        message = str(error.get("message", "unknown"))
        if cause == "UNKNOWN_ACCOUNT":
            return AccountNotFoundError(str(info.get("requested_account_id", "")), message)
        if cause == "UNKNOWN_ACCESS_KEY":
            return AccessKeyNotFoundError("", str(info.get("public_key", "")), message)
        return RPCError(
            int(error.get("code", -1)),
            message,
            name=error.get("name"),
            cause=cause,
            data=error.get("data"),
        )

    # Convenience wrappers -------------------------------------------------

    def query(self, request: Dict[str, Any], block_reference: BlockReference) -> Dict[str, Any]:
        params = {**request, **block_reference.to_params()}
        return self.call("query", params)

    def view_account(
        self, account_id: str, block_reference: BlockReference | None = None
    ) -> Dict[str, Any]:
        result = self.query(
            {"request_type": "view_account", "account_id": account_id},
            block_reference or BlockReference.latest(),
        )
        # Older nodes report missing accounts inside a successful result.
        if isinstance(result, dict) and "does not exist" in str(result.get("error", "")):
            raise AccountNotFoundError(account_id, str(result["error"]))
        return result

    def view_access_key(
        self,
        account_id: str,
        public_key: str,
        block_reference: BlockReference | None = None,
    ) -> Dict[str, Any]:
        try:
            result = self.query(
                {
                    "request_type": "view_access_key",
                    "account_id": account_id,
                    "public_key": public_key,
                },
                block_reference or BlockReference.latest(),
            )
        except AccessKeyNotFoundError as exc:
            raise AccessKeyNotFoundError(account_id, public_key, exc.message) from exc
        if isinstance(result, dict) and result.get("error"):
            raise AccessKeyNotFoundError(account_id, public_key, str(result["error"]))
        return result

    def view_code(
        self, account_id: str, block_reference: BlockReference | None = None
    ) -> Dict[str, Any]:
        """Contract code deployed on ``account_id``: ``code_base64`` and ``hash``."""

        return self.query(
            {"request_type": "view_code", "account_id": account_id},
            block_reference or BlockReference.latest(),
        )

    def broadcast_tx_commit(self, signed_transaction_base64: str) -> Dict[str, Any]:
        return self.call("broadcast_tx_commit", [signed_transaction_base64])

    def status(self) -> Dict[str, Any]:
        return self.call("status")


def client_for_network(network: NetworkConfig) -> NearRPCClient:
    """Return the RPC client used by queries, signers and broadcasters."""

    return NearRPCClient.for_network(network)
