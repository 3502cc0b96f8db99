import re
from pydantic import BaseModel
from typing import Dict, Optional

from src.core.errors import InvalidRequestError

DEFAULT_CHAIN = "polkadot"


class ChainConfig(BaseModel):
    """
    Static description of one supported Substrate chain.
    Hosts are injected into the gateway and normaliser, never derived.
    """
    id: str
    name: str
    symbol: str
    decimals: int
    api_host: str
    explorer_host: str
    # SS58 (base58 alphabet) or a 0x-prefixed 32-byte public key
    address_pattern: str = r"^(?:[1-9A-HJ-NP-Za-km-z]{46,48}|0x[0-9a-fA-F]{64})$"

    @property
    def api_base_url(self) -> str:
        return f"https://{self.api_host}"

    def explorer_url(self, tx_hash: Optional[str]) -> Optional[str]:
        if not tx_hash:
            return None
        return f"https://{self.explorer_host}/extrinsic/{tx_hash}"

    def is_valid_address(self, address: str) -> bool:
        return re.match(self.address_pattern, address) is not None


SUPPORTED_CHAINS: Dict[str, ChainConfig] = {
    "polkadot": ChainConfig(
        id="polkadot",
        name="Polkadot",
        symbol="DOT",
        decimals=10,
        api_host="polkadot.api.subscan.io",
        explorer_host="polkadot.subscan.io",
    ),
    "kusama": ChainConfig(
        id="kusama",
        name="Kusama",
        symbol="KSM",
        decimals=12,
        api_host="kusama.api.subscan.io",
        explorer_host="kusama.subscan.io",
    ),
}


def resolve_chain(chain_id: Optional[str]) -> ChainConfig:
    chain = SUPPORTED_CHAINS.get((chain_id or DEFAULT_CHAIN).lower())
    if chain is None:
        supported = ", ".join(sorted(SUPPORTED_CHAINS))
        raise InvalidRequestError(f"Unsupported chain '{chain_id}'. Supported: {supported}")
    return chain


def validate_address(chain: ChainConfig, address: Optional[str]) -> str:
    if not address or not address.strip():
        raise InvalidRequestError("Address is required")
    address = address.strip()
    if not chain.is_valid_address(address):
        raise InvalidRequestError(f"Invalid {chain.name} address: {address}")
    return address
