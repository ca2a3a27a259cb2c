"""Chain-level records: protocol and genesis parameters, tip, delegation, evaluation results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ProtocolParameters:
    """
    Flat protocol parameter record.

    Fields a backend does not expose stay at zero or empty.
    Rationals are floats, amounts and limits are ints.
    """
    min_fee_constant: int = 0
    min_fee_coefficient: int = 0
    max_block_size: int = 0
    max_tx_size: int = 0
    max_block_header_size: int = 0
    key_deposit: int = 0
    pool_deposit: int = 0
    pool_influence: float = 0.0
    monetary_expansion: float = 0.0
    treasury_expansion: float = 0.0
    decentralization_param: float = 0.0
    extra_entropy: str = ""
    protocol_major_version: int = 0
    protocol_minor_version: int = 0
    min_utxo: int = 0
    min_pool_cost: int = 0
    price_mem: float = 0.0
    price_step: float = 0.0
    max_tx_ex_mem: int = 0
    max_tx_ex_steps: int = 0
    max_block_ex_mem: int = 0
    max_block_ex_steps: int = 0
    max_val_size: int = 0
    collateral_percent: int = 0
    max_collateral_inputs: int = 0
    coins_per_utxo_word: int = 0
    coins_per_utxo_byte: int = 0
    cost_models: Dict[str, List[int]] = field(default_factory=dict)  # PlutusV1/V2/V3
    max_reference_scripts_size: int = 0
    min_fee_reference_scripts_range: int = 0
    min_fee_reference_scripts_base: float = 0.0
    min_fee_reference_scripts_multiplier: float = 0.0


@dataclass(frozen=True)
class GenesisParameters:
    active_slots_coefficient: float = 0.0
    update_quorum: int = 0
    max_lovelace_supply: int = 0
    network_magic: int = 0
    epoch_length: int = 0
    system_start: int = 0  # unix seconds
    slots_per_kes_period: int = 0
    slot_length: float = 0.0  # seconds
    max_kes_evolutions: int = 0
    security_param: int = 0


@dataclass(frozen=True)
class Tip:
    slot: int
    height: int
    hash: str


@dataclass(frozen=True)
class Delegation:
    active: bool
    rewards: int
    pool_id: str = ""
    epoch: Optional[int] = None

    @classmethod
    def inactive(cls) -> "Delegation":
        return cls(active=False, rewards=0, pool_id="")


class RedeemerTag(str, Enum):
    SPEND = "spend"
    MINT = "mint"
    CERT = "cert"
    REWARD = "reward"
    VOTE = "vote"
    PROPOSE = "propose"


@dataclass(frozen=True)
class ExecutionUnits:
    mem: int
    steps: int


@dataclass(frozen=True)
class EvalRedeemer:
    tag: RedeemerTag
    index: int
    ex_units: ExecutionUnits

    @property
    def key(self) -> str:
        return f"{self.tag.value}:{self.index}"
