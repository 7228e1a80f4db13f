"""Turn a prepopulated transaction into a signed, Borsh-encoded transaction."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from . import rpc_client
from .actions import PrepopulatedTransaction
from .codec import BorshWriter, CodecError, base58_decode, base58_encode
from .config import ConfigurationError, NetworkConfig
from .errors import InvalidInputError
from .primitives import KeyPair, PublicKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """A prepopulated transaction completed with key, nonce and block hash."""

    prepopulated: PrepopulatedTransaction
    public_key: PublicKey
    nonce: int
    block_hash: bytes

    @property
    def signer_id(self) -> str:
        return self.prepopulated.signer_id

    @property
    def receiver_id(self) -> str:
        return self.prepopulated.receiver_id

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.string(self.signer_id)
        self.public_key.write_borsh(writer)
        writer.u64(self.nonce)
        writer.string(self.receiver_id)
        writer.fixed(self.block_hash, 32)
        writer.vec(self.prepopulated.actions, lambda action: action.write_borsh(writer))

    def to_borsh(self) -> bytes:
        writer = BorshWriter()
        self.write_borsh(writer)
        return writer.getvalue()

    def digest(self) -> bytes:
        return hashlib.sha256(self.to_borsh()).digest()

    @property
    def hash(self) -> str:
        return base58_encode(self.digest())


@dataclass(frozen=True)
class SignedTransaction:
    transaction: Transaction
    signature: bytes

    @property
    def hash(self) -> str:
        return self.transaction.hash

    def to_borsh(self) -> bytes:
        writer = BorshWriter()
        self.transaction.write_borsh(writer)
        writer.u8(int(self.transaction.public_key.key_type)).fixed(self.signature, 64)
        return writer.getvalue()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_borsh()).decode("ascii")


class Signer(ABC):
    """Signs transactions for whichever account the transaction names."""

    @abstractmethod
    def key_pair_for(self, signer_id: str, network: NetworkConfig) -> KeyPair:
        ...

    def build_transaction(
        self, prepopulated: PrepopulatedTransaction, network: NetworkConfig
    ) -> Transaction:
        """Fetch the access-key nonce and a recent block hash for ``prepopulated``."""

        public_key = self.key_pair_for(prepopulated.signer_id, network).public_key
        client = rpc_client.client_for_network(network)
        access_key = client.view_access_key(prepopulated.signer_id, str(public_key))
        try:
            block_hash = base58_decode(str(access_key["block_hash"]))
            nonce = int(access_key["nonce"]) + 1
        except (KeyError, TypeError, ValueError, CodecError) as exc:
            raise rpc_client.RPCTransportError(
                f"view_access_key returned an unexpected payload: {access_key!r}"
            ) from exc
        logger.debug(
            "Access key %s on %s: next nonce %s", public_key, prepopulated.signer_id, nonce
        )
        return Transaction(prepopulated, public_key, nonce, block_hash)

    def sign(self, transaction: Transaction, network: NetworkConfig) -> SignedTransaction:
        key_pair = self.key_pair_for(transaction.signer_id, network)
        if key_pair.public_key != transaction.public_key:
            raise InvalidInputError(
                f"transaction names public key {transaction.public_key} but the signing key "
                f"is {key_pair.public_key}"
            )
        signature = key_pair.sign(transaction.digest())
        logger.info("Signed transaction %s for %s", transaction.hash, transaction.signer_id)
        return SignedTransaction(transaction, signature)


class KeyPairSigner(Signer):
    """Sign with a private key supplied in plaintext."""

    def __init__(self, key_pair: KeyPair) -> None:
        self.key_pair = key_pair

    def key_pair_for(self, signer_id: str, network: NetworkConfig) -> KeyPair:
        return self.key_pair


class KeychainSigner(Signer):
    """Sign with a key stored as ``<credentials_home>/<network>/<account>.json``."""

    def __init__(self, credentials_home: Path) -> None:
        self.credentials_home = Path(credentials_home).expanduser()
        self._cache: Dict[tuple[str, str], KeyPair] = {}

    def credentials_path(self, signer_id: str, network: NetworkConfig) -> Path:
        return self.credentials_home / network.network_name / f"{signer_id}.json"

    def key_pair_for(self, signer_id: str, network: NetworkConfig) -> KeyPair:
        cache_key = (network.network_name, signer_id)
        if cache_key not in self._cache:
            self._cache[cache_key] = self._load(signer_id, network)
        return self._cache[cache_key]

    def _load(self, signer_id: str, network: NetworkConfig) -> KeyPair:
        path = self.credentials_path(signer_id, network)
        if not path.exists():
            raise ConfigurationError(
                f"No access key for <{signer_id}> on network <{network.network_name}> "
                f"found at {path}. Sign with plaintext-private-key or save the key first."
            )
        try:
            data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Unable to read credentials file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Credentials file {path} must contain a JSON object")
        private_key = data.get("private_key") or data.get("secret_key")
        if not private_key:
            raise ConfigurationError(f"Credentials file {path} has no private_key entry")
        try:
            key_pair = KeyPair.from_string(str(private_key))
        except InvalidInputError as exc:
            raise ConfigurationError(f"Credentials file {path}: {exc}") from exc
        stored_public = data.get("public_key")
        if stored_public and stored_public != str(key_pair.public_key):
            raise ConfigurationError(
                f"Credentials file {path} lists public key {stored_public} which does not "
                "match its private key"
            )
        logger.debug("Loaded access key %s from %s", key_pair.public_key, path)
        return key_pair


def save_credentials(
    credentials_home: Path, network_name: str, account_id: str, key_pair: KeyPair
) -> Path:
    """Store ``key_pair`` where :class:`KeychainSigner` will look for it."""

    directory = Path(credentials_home).expanduser() / network_name
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{account_id}.json"
    payload = {
        "account_id": account_id,
        "public_key": str(key_pair.public_key),
        "private_key": key_pair.secret_key,
    }
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, indent=2) + "\n")
    # O_CREAT leaves the mode of an existing file alone.
    os.chmod(path, 0o600)
    logger.info("Saved access key for %s to %s", account_id, path)
    return path
