"""Canonical ledger model shared by every provider."""

from .ledger import (
    OutRef, Value, DatumHash, InlineDatum, PlutusDatum, Datum, ScriptRef,
    PreAlonzoOutput, PostAlonzoOutput, Output, UTxO, UtxoList, AdaptationWarning,
    NATIVE, PLUTUS_V1, PLUTUS_V2, PLUTUS_V3, SCRIPT_TAGS, TAG_LANGUAGES,
    address_bytes, is_hex, normalize_address, normalize_language, validate_address,
)
from .params import (
    ProtocolParameters, GenesisParameters, Tip, Delegation,
    RedeemerTag, ExecutionUnits, EvalRedeemer,
)

__all__ = [
    # Ledger
    "OutRef", "Value", "DatumHash", "InlineDatum", "PlutusDatum", "Datum", "ScriptRef",
    "PreAlonzoOutput", "PostAlonzoOutput", "Output", "UTxO", "UtxoList", "AdaptationWarning",
    "NATIVE", "PLUTUS_V1", "PLUTUS_V2", "PLUTUS_V3", "SCRIPT_TAGS", "TAG_LANGUAGES",
    "address_bytes", "is_hex", "normalize_address", "normalize_language", "validate_address",
    # Chain
    "ProtocolParameters", "GenesisParameters", "Tip", "Delegation",
    "RedeemerTag", "ExecutionUnits", "EvalRedeemer",
]
