"""Network table and the per-session network policy."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

NETWORKS: Dict[str, str] = {
    'mainnet': '0x1',
    'ropsten': '0x3',
    'kovan': '0x2a',
    'rinkeby': '0x4',
}

MAINNET = 'mainnet'
TESTNETS: List[str] = ['ropsten', 'kovan', 'rinkeby']


def get_chain_id(network_name: str) -> str:
    """Chain id for a network name. Raises ``KeyError`` if unknown."""
    if network_name not in NETWORKS:
        raise KeyError(
            f"Unknown network '{network_name}'. Available: {list(NETWORKS)}"
        )
    return NETWORKS[network_name]


def normalize_chain_id(chain_id: Union[int, str, None]) -> Optional[str]:
    """
    Canonical form of a chain id as reported by a wallet

    Wallets report hex strings ("0x2a"), some report decimal ints or
    decimal strings. Everything becomes lowercase 0x-hex.
    """
    if chain_id is None:
        return None
    if isinstance(chain_id, int) and not isinstance(chain_id, bool):
        return hex(chain_id)

    text = str(chain_id).strip().lower()
    if not text:
        return None
    if text.startswith('0x'):
        try:
            return hex(int(text, 16))
        except ValueError:
            return text
    if text.isdigit():
        return hex(int(text))
    return text


@dataclass(frozen=True)
class NetworkPolicy:
    """The single network a session expects the wallet to be on."""

    testnet: str
    is_production: bool = False

    def __post_init__(self):
        if self.testnet not in TESTNETS:
            raise ValueError(
                f"Unknown testnet '{self.testnet}'. Available: {TESTNETS}"
            )

    @property
    def expected_network(self) -> str:
        return MAINNET if self.is_production else self.testnet

    @property
    def expected_chain_id(self) -> str:
        return get_chain_id(self.expected_network)

    def matches(self, chain_id: Union[int, str, None]) -> bool:
        """Whether a reported chain id is the expected one"""
        return normalize_chain_id(chain_id) == self.expected_chain_id
