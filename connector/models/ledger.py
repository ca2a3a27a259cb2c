"""
Canonical UTxO model.

Outputs are a closed sum: PreAlonzoOutput carries only address and value,
PostAlonzoOutput may carry a datum option and a reference script. Everything
here is immutable and built fresh per call.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import cbor2
from pycardano import Address, TransactionInput, TransactionOutput
from pycardano import UTxO as PyUTxO
from pycardano.exception import DecodingException, DeserializeException

from ..errors import DecodeFailedError, InvalidAddressError, InvalidInputError
from ..types import encode_unit, parse_unit

logger = logging.getLogger(__name__)

_HEX = frozenset("0123456789abcdef")

NATIVE = "native"
PLUTUS_V1 = "plutus:v1"
PLUTUS_V2 = "plutus:v2"
PLUTUS_V3 = "plutus:v3"

# Language tag used inside a ledger script_ref
SCRIPT_TAGS: Dict[str, int] = {NATIVE: 0, PLUTUS_V1: 1, PLUTUS_V2: 2, PLUTUS_V3: 3}
TAG_LANGUAGES: Dict[int, str] = {v: k for k, v in SCRIPT_TAGS.items()}

_LANGUAGE_ALIASES: Dict[str, str] = {
    "native": NATIVE, "timelock": NATIVE, "simple": NATIVE, "multisig": NATIVE,
    "plutusv1": PLUTUS_V1, "plutusv2": PLUTUS_V2, "plutusv3": PLUTUS_V3,
}


def is_hex(s: Any, length: Optional[int] = None) -> bool:
    if not isinstance(s, str) or (length is not None and len(s) != length) or len(s) % 2:
        return False
    return all(c in _HEX for c in s.lower())


def normalize_language(language: str) -> str:
    """Map any backend spelling ("plutusV2", "plutus_v2", "timelock", ...) onto a canonical language."""
    key = (language or "").lower().replace(":", "").replace("_", "").replace("-", "")
    if key not in _LANGUAGE_ALIASES:
        raise DecodeFailedError(f"unknown script language {language!r}")
    return _LANGUAGE_ALIASES[key]


def normalize_address(address: Union[str, bytes]) -> str:
    """Parse a bech32 string or raw address bytes, return bech32."""
    try:
        return str(Address.from_primitive(address))
    except (DecodingException, DeserializeException, TypeError, ValueError, IndexError) as e:
        raise DecodeFailedError(f"malformed address: {e}", key=str(address)[:120])


def validate_address(address: str, operation: str = "") -> str:
    """Caller-supplied address check. Returns the normalized bech32 form."""
    if not isinstance(address, str) or not address:
        raise InvalidAddressError("address must be a non-empty string", operation=operation, key=str(address))
    try:
        return normalize_address(address)
    except DecodeFailedError:
        raise InvalidAddressError("not a valid Cardano address", operation=operation, key=address)


def address_bytes(address: str) -> bytes:
    return Address.from_primitive(address).to_primitive()


@dataclass(frozen=True)
class OutRef:
    """Reference to a transaction output: (tx hash, output index)."""
    tx_hash: str
    index: int

    def __post_init__(self):
        if not is_hex(self.tx_hash, 64):
            raise InvalidInputError("tx hash must be 64 hex characters", key=str(self.tx_hash))
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise InvalidInputError("output index must be a non-negative integer", key=f"{self.tx_hash}#{self.index}")
        object.__setattr__(self, "tx_hash", self.tx_hash.lower())

    @classmethod
    def of(cls, ref: Union["OutRef", Tuple[str, int], str]) -> "OutRef":
        """Accept an OutRef, a (hash, index) pair, or "hash#index"."""
        if isinstance(ref, OutRef):
            return ref
        if isinstance(ref, str):
            tx_hash, sep, index = ref.partition("#")
            if not sep or not (index.isascii() and index.isdigit()):
                raise InvalidInputError("expected hash#index", key=ref)
            return cls(tx_hash, int(index))
        try:
            tx_hash, index = ref
        except (TypeError, ValueError):
            raise InvalidInputError("expected (tx_hash, index)", key=repr(ref))
        return cls(tx_hash, index)

    def __str__(self) -> str:
        return f"{self.tx_hash}#{self.index}"


@dataclass(frozen=True)
class Value:
    """
    Coin plus multi-asset map policy_hex -> asset_name_hex -> quantity. No zero entries.

    The asset map is copied into read-only mappings on construction.
    """
    coin: int
    assets: Mapping[str, Mapping[str, int]] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.coin, bool) or not isinstance(self.coin, int) or self.coin < 0:
            raise DecodeFailedError(f"invalid coin {self.coin!r}")
        for policy, names in self.assets.items():
            if not names:
                raise DecodeFailedError("empty asset map", key=policy)
            for name, qty in names.items():
                if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                    raise DecodeFailedError(f"invalid quantity {qty!r}", key=encode_unit(policy, name))
        frozen = {policy: MappingProxyType(dict(names)) for policy, names in self.assets.items()}
        object.__setattr__(self, "assets", MappingProxyType(frozen))

    def __hash__(self) -> int:
        return hash((self.coin, tuple(sorted(
            (policy, tuple(sorted(names.items()))) for policy, names in self.assets.items()
        ))))

    @classmethod
    def build(cls, coin: int, entries: Iterable[Tuple[str, str, int]] = ()) -> "Value":
        """Merge (policy, name, qty) entries, drop zero quantities, reject negatives."""
        merged: Dict[str, Dict[str, int]] = {}
        for policy, name, qty in entries:
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise DecodeFailedError(f"quantity must be an integer, got {qty!r}", key=encode_unit(policy, name))
            if qty < 0:
                raise DecodeFailedError(f"negative quantity {qty}", key=encode_unit(policy, name))
            if not is_hex(policy, 56) or not is_hex(name) or len(name) > 64:
                raise DecodeFailedError("malformed asset id", key=encode_unit(policy, name))
            if qty == 0:
                continue
            names = merged.setdefault(policy.lower(), {})
            names[name.lower()] = names.get(name.lower(), 0) + qty
        return cls(coin=coin, assets=merged)

    @classmethod
    def from_units(cls, amounts: Iterable[Tuple[str, int]]) -> "Value":
        """Build from (unit, qty) pairs where "lovelace" is the coin."""
        coin = 0
        entries = []
        for unit, qty in amounts:
            policy, name = parse_unit(unit)
            if not policy:
                coin += qty
            else:
                entries.append((policy, name, qty))
        return cls.build(coin, entries)

    def quantity_of(self, unit: str) -> int:
        policy, name = parse_unit(unit)
        if not policy:
            return self.coin
        return self.assets.get(policy, {}).get(name, 0)

    def to_primitive(self) -> Any:
        if not self.assets:
            return self.coin
        return [self.coin, {
            bytes.fromhex(policy): {bytes.fromhex(name): qty for name, qty in names.items()}
            for policy, names in self.assets.items()
        }]


@dataclass(frozen=True)
class DatumHash:
    hash: bytes

    def __post_init__(self):
        if not isinstance(self.hash, bytes) or len(self.hash) != 32:
            raise DecodeFailedError("datum hash must be 32 bytes")

    @classmethod
    def from_hex(cls, h: str) -> "DatumHash":
        if not is_hex(h, 64):
            raise DecodeFailedError("malformed datum hash", key=str(h))
        return cls(bytes.fromhex(h))

    def to_primitive(self) -> list:
        return [0, self.hash]


@dataclass(frozen=True)
class InlineDatum:
    """Plutus data embedded in the output. `data` is the decoded form of `cbor`."""
    cbor: bytes
    data: Any = field(default=None, compare=False, hash=False, repr=False)

    @property
    def hash(self) -> bytes:
        return hashlib.blake2b(self.cbor, digest_size=32).digest()

    def to_primitive(self) -> list:
        return [1, cbor2.CBORTag(24, self.cbor)]


# Datum fetched by hash has the same shape as an inline one
PlutusDatum = InlineDatum
Datum = Union[DatumHash, InlineDatum]


@dataclass(frozen=True)
class ScriptRef:
    """Reference script. `script` is the byte string the ledger stores next to the language tag."""
    language: str
    script: bytes

    def __post_init__(self):
        if self.language not in SCRIPT_TAGS:
            raise DecodeFailedError(f"unknown script language {self.language!r}")
        if not isinstance(self.script, bytes) or not self.script:
            raise DecodeFailedError("empty script", key=self.language)

    @property
    def is_plutus(self) -> bool:
        return self.language != NATIVE

    def to_primitive(self) -> cbor2.CBORTag:
        body = cbor2.loads(self.script) if self.language == NATIVE else self.script
        return cbor2.CBORTag(24, cbor2.dumps([SCRIPT_TAGS[self.language], body], canonical=True))


@dataclass(frozen=True)
class PreAlonzoOutput:
    address: str
    value: Value

    @property
    def datum(self) -> None:
        return None

    @property
    def script_ref(self) -> None:
        return None

    def to_primitive(self) -> list:
        return [address_bytes(self.address), self.value.to_primitive()]

    def to_cbor(self) -> bytes:
        return cbor2.dumps(self.to_primitive(), canonical=True)


@dataclass(frozen=True)
class PostAlonzoOutput:
    address: str
    value: Value
    datum: Optional[Datum] = None
    script_ref: Optional[ScriptRef] = None

    def to_primitive(self) -> dict:
        out: Dict[int, Any] = {0: address_bytes(self.address), 1: self.value.to_primitive()}
        if self.datum is not None:
            out[2] = self.datum.to_primitive()
        if self.script_ref is not None:
            out[3] = self.script_ref.to_primitive()
        return out

    def to_cbor(self) -> bytes:
        return cbor2.dumps(self.to_primitive(), canonical=True)


Output = Union[PreAlonzoOutput, PostAlonzoOutput]


@dataclass(frozen=True)
class UTxO:
    input: OutRef
    output: Output

    def to_pycardano(self) -> PyUTxO:
        tx_in = TransactionInput.from_primitive([bytes.fromhex(self.input.tx_hash), self.input.index])
        return PyUTxO(tx_in, TransactionOutput.from_cbor(self.output.to_cbor()))


@dataclass(frozen=True)
class AdaptationWarning:
    """A non-fatal problem met while adapting one backend item."""
    ref: str
    message: str


class UtxoList(list):
    """List of UTxOs with the warnings collected while adapting them."""

    def __init__(self, items: Iterable[UTxO] = (), warnings: Optional[List[AdaptationWarning]] = None):
        super().__init__(items)
        self.warnings: List[AdaptationWarning] = list(warnings or [])

    def warn(self, ref: str, message: str):
        logger.warning(f"{ref}: {message}")
        self.warnings.append(AdaptationWarning(ref, message))
