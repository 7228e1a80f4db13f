"""``contract`` commands."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping

from .. import rpc_client, specs
from ..callbacks import AfterBlockSelected
from ..config import NetworkConfig
from ..context import FieldStage, StageContext
from ..fields import Field, FieldSpec
from ..rpc_client import BlockReference, RPCTransportError
from ..wasm import exported_functions
from .common import AccountStage

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_FOLDER = "~/Downloads"


@dataclass(frozen=True)
class SaveContractCode(AfterBlockSelected):
    """Download the contract, store it as ``<account>.wasm`` and list its functions."""

    contract_account_id: str
    folder_path: Path

    def __call__(self, network: NetworkConfig, block_reference: BlockReference) -> None:
        client = rpc_client.client_for_network(network)
        result = client.view_code(self.contract_account_id, block_reference)
        if not isinstance(result, dict) or "code_base64" not in result:
            raise RPCTransportError(
                f"RPC server returned no contract code for <{self.contract_account_id}>"
            )
        try:
            code = base64.b64decode(result["code_base64"], validate=True)
        except (binascii.Error, TypeError) as exc:
            raise RPCTransportError(
                f"Contract code of <{self.contract_account_id}> is not valid base64"
            ) from exc

        self.folder_path.mkdir(parents=True, exist_ok=True)
        path = self.folder_path / f"{self.contract_account_id}.wasm"
        path.write_bytes(code)
        logger.info("Saved %d bytes of contract code to %s", len(code), path)
        print(f"\nThe contract code of <{self.contract_account_id}> was saved to {path}")

        functions = exported_functions(code)
        if not functions:
            print("The contract exports no functions.")
            return
        print("Exported functions:")
        for name in functions:
            print(f"  {name}")


class InspectContractStage(FieldStage):
    name = "inspect-contract"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.path_spec(
            "folder_path", "Where to download the contract file?", default=DEFAULT_DOWNLOAD_FOLDER
        )

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        return previous.extend(
            self.name,
            fields=scope.values(),
            view=SaveContractCode(
                previous.value("contract_account_id"), scope["folder_path"].value
            ),
        )


def inspect_stages() -> list:
    return [
        AccountStage("contract-account", "contract_account_id", "What is the contract account ID?"),
        InspectContractStage(),
    ]
