"""UTxO-RPC messages -> canonical model."""

from typing import Any, Dict, List

from ..errors import DecodeFailedError
from ..models import EvalRedeemer, OutRef, ProtocolParameters, Tip, UTxO
from ..numeric import parse_int, parse_pair
from ..outputs import decode_output_cbor
from ..redeemers import normalize_redeemers

COST_MODEL_NAMES = {"plutus_v1": "PlutusV1", "plutus_v2": "PlutusV2", "plutus_v3": "PlutusV3"}

CONFIRMED_STAGES = (4, "STAGE_CONFIRMED", "CONFIRMED")


def adapt_utxo(item: Dict[str, Any]) -> UTxO:
    ref = item.get("txo_ref") or {}
    tx_hash = ref.get("hash")
    if not isinstance(tx_hash, bytes) or not item.get("native_bytes"):
        raise DecodeFailedError("utxo lacks txo_ref hash or native_bytes")
    return UTxO(
        input=OutRef(tx_hash.hex(), parse_int(ref.get("index"))),
        output=decode_output_cbor(item["native_bytes"]),
    )


def _ratio(value: Any, field: str) -> float:
    value = value or {}
    return float(parse_pair(value.get("numerator"), value.get("denominator"), field))


def protocol_parameters(params: Dict[str, Any]) -> ProtocolParameters:
    p = params.get("cardano") if "cardano" in params else params
    if not p:
        raise DecodeFailedError("empty cardano parameters", operation="get_protocol_parameters")
    prices = p.get("prices") or {}
    tx_units = p.get("max_execution_units_per_transaction") or {}
    block_units = p.get("max_execution_units_per_block") or {}
    version = p.get("protocol_version") or {}
    cost_models = {}
    for lang, name in COST_MODEL_NAMES.items():
        model = (p.get("cost_models") or {}).get(lang)
        if model and model.get("values"):
            cost_models[name] = [parse_int(v) for v in model["values"]]
    return ProtocolParameters(
        min_fee_constant=parse_int(p.get("min_fee_constant")),
        min_fee_coefficient=parse_int(p.get("min_fee_coefficient")),
        max_block_size=parse_int(p.get("max_block_body_size")),
        max_tx_size=parse_int(p.get("max_tx_size")),
        max_block_header_size=parse_int(p.get("max_block_header_size")),
        key_deposit=parse_int(p.get("stake_key_deposit")),
        pool_deposit=parse_int(p.get("pool_deposit")),
        pool_influence=_ratio(p.get("pool_influence"), "pool_influence"),
        monetary_expansion=_ratio(p.get("monetary_expansion"), "monetary_expansion"),
        treasury_expansion=_ratio(p.get("treasury_expansion"), "treasury_expansion"),
        protocol_major_version=parse_int(version.get("major")),
        protocol_minor_version=parse_int(version.get("minor")),
        min_pool_cost=parse_int(p.get("min_pool_cost")),
        price_mem=_ratio(prices.get("memory"), "prices.memory"),
        price_step=_ratio(prices.get("steps"), "prices.steps"),
        max_tx_ex_mem=parse_int(tx_units.get("memory")),
        max_tx_ex_steps=parse_int(tx_units.get("steps")),
        max_block_ex_mem=parse_int(block_units.get("memory")),
        max_block_ex_steps=parse_int(block_units.get("steps")),
        max_val_size=parse_int(p.get("max_value_size")),
        collateral_percent=parse_int(p.get("collateral_percentage")),
        max_collateral_inputs=parse_int(p.get("max_collateral_inputs")),
        coins_per_utxo_byte=parse_int(p.get("coins_per_utxo_byte")),
        cost_models=cost_models,
    )


def tip(point: Dict[str, Any], block: Dict[str, Any]) -> Tip:
    block_hash = point.get("hash")
    if not isinstance(block_hash, bytes) or not block_hash:
        raise DecodeFailedError("tip has no hash", operation="get_tip")
    header = (block or {}).get("header") or {}
    return Tip(slot=parse_int(point.get("slot")), height=parse_int(header.get("height")), hash=block_hash.hex())


def eval_redeemers(report: Dict[str, Any]) -> List[EvalRedeemer]:
    entries = []
    for r in (report or {}).get("redeemers") or []:
        units = r.get("ex_units") or {}
        entries.append((r.get("purpose"), r.get("index"), units.get("memory"), units.get("steps")))
    return normalize_redeemers(entries)


def is_confirmed_stage(event: Dict[str, Any]) -> bool:
    return (event or {}).get("stage") in CONFIRMED_STAGES
