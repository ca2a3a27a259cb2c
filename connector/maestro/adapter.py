"""Maestro JSON -> canonical model."""

from typing import Any, Dict, List

from ..errors import DecodeFailedError
from ..models import (
    Delegation, EvalRedeemer, OutRef, ProtocolParameters, ScriptRef, Tip, UTxO,
    NATIVE, normalize_language,
)
from ..numeric import lovelace_of, parse_int, parse_ratio
from ..outputs import decode_cbor, decode_output_cbor, hex_bytes
from ..redeemers import normalize_redeemers

COST_MODEL_NAMES = {"plutus_v1": "PlutusV1", "plutus_v2": "PlutusV2", "plutus_v3": "PlutusV3"}


def adapt_utxo(item: Dict[str, Any]) -> UTxO:
    """Maestro returns the ledger output bytes; everything is decoded from txout_cbor."""
    if not isinstance(item, dict) or not item.get("txout_cbor"):
        raise DecodeFailedError("utxo lacks txout_cbor")
    try:
        ref = OutRef(item["tx_hash"], item["index"])
    except KeyError as e:
        raise DecodeFailedError(f"utxo lacks {e}")
    return UTxO(input=ref, output=decode_output_cbor(item["txout_cbor"]))


def additional_utxo(utxo: UTxO) -> Dict[str, Any]:
    return {"tx_hash": utxo.input.tx_hash, "index": utxo.input.index, "txout_cbor": utxo.output.to_cbor().hex()}


def _bytes_of(value: Any) -> int:
    return parse_int(value.get("bytes")) if isinstance(value, dict) else parse_int(value)


def protocol_parameters(p: Dict[str, Any]) -> ProtocolParameters:
    prices = p.get("script_execution_prices") or {}
    tx_units = p.get("max_execution_units_per_transaction") or {}
    block_units = p.get("max_execution_units_per_block") or {}
    version = p.get("version") or {}
    ref_fees = p.get("min_fee_reference_scripts") or {}
    cost_models = {
        COST_MODEL_NAMES.get(lang, lang): [parse_int(v) for v in model]
        for lang, model in (p.get("plutus_cost_models") or {}).items()
    }
    return ProtocolParameters(
        min_fee_constant=lovelace_of(p.get("min_fee_constant")),
        min_fee_coefficient=parse_int(p.get("min_fee_coefficient")),
        max_block_size=_bytes_of(p.get("max_block_body_size")),
        max_tx_size=_bytes_of(p.get("max_transaction_size")),
        max_block_header_size=_bytes_of(p.get("max_block_header_size")),
        key_deposit=lovelace_of(p.get("stake_credential_deposit")),
        pool_deposit=lovelace_of(p.get("stake_pool_deposit")),
        pool_influence=parse_ratio(p.get("stake_pool_pledge_influence"), "stake_pool_pledge_influence"),
        monetary_expansion=parse_ratio(p.get("monetary_expansion"), "monetary_expansion"),
        treasury_expansion=parse_ratio(p.get("treasury_expansion"), "treasury_expansion"),
        protocol_major_version=parse_int(version.get("major")),
        protocol_minor_version=parse_int(version.get("minor")),
        min_pool_cost=lovelace_of(p.get("min_stake_pool_cost")),
        price_mem=parse_ratio(prices.get("memory"), "script_execution_prices.memory"),
        price_step=parse_ratio(prices.get("cpu"), "script_execution_prices.cpu"),
        max_tx_ex_mem=parse_int(tx_units.get("memory")),
        max_tx_ex_steps=parse_int(tx_units.get("cpu")),
        max_block_ex_mem=parse_int(block_units.get("memory")),
        max_block_ex_steps=parse_int(block_units.get("cpu")),
        max_val_size=_bytes_of(p.get("max_value_size")),
        collateral_percent=parse_int(p.get("collateral_percentage")),
        max_collateral_inputs=parse_int(p.get("max_collateral_inputs")),
        coins_per_utxo_byte=parse_int(p.get("min_utxo_deposit_coefficient")),
        cost_models=cost_models,
        max_reference_scripts_size=_bytes_of(p.get("max_reference_scripts_size")),
        min_fee_reference_scripts_range=parse_int(ref_fees.get("range")),
        min_fee_reference_scripts_base=parse_ratio(ref_fees.get("base"), "min_fee_reference_scripts.base"),
        min_fee_reference_scripts_multiplier=parse_ratio(
            ref_fees.get("multiplier"), "min_fee_reference_scripts.multiplier"
        ),
    )


def tip(data: Dict[str, Any]) -> Tip:
    if not data or not data.get("block_hash"):
        raise DecodeFailedError("chain tip has no block hash", operation="get_tip")
    return Tip(slot=parse_int(data.get("slot")), height=parse_int(data.get("height")), hash=data["block_hash"])


def delegation(account: Dict[str, Any], epoch: Any = None) -> Delegation:
    pool_id = account.get("delegated_pool") or ""
    return Delegation(
        active=bool(account.get("registered")) and bool(pool_id),
        rewards=parse_int(account.get("rewards_available"), "rewards_available"),
        pool_id=pool_id,
        epoch=parse_int(epoch) if epoch is not None else None,
    )


def script_ref(data: Dict[str, Any]) -> ScriptRef:
    """
    /scripts/{h}: {"type", "bytes"}.

    `bytes` is the script CBOR: a native script structure, or a byte string
    wrapping the Plutus script, which is unwrapped.
    """
    language = normalize_language(data.get("type", ""))
    raw = hex_bytes(data.get("bytes") or "", "script")
    if not raw:
        raise DecodeFailedError("script has no bytes", key=data.get("hash"))
    inner = decode_cbor(raw, "script")
    if language == NATIVE:
        return ScriptRef(language=language, script=raw)
    if not isinstance(inner, bytes):
        raise DecodeFailedError("plutus script CBOR is not a byte string", key=data.get("hash"))
    return ScriptRef(language=language, script=inner)


def eval_redeemers(result: Any) -> List[EvalRedeemer]:
    if not isinstance(result, list):
        raise DecodeFailedError("evaluation result is not a list", operation="evaluate_tx")
    entries = []
    for item in result:
        units = item.get("ex_units") or {}
        entries.append((item.get("redeemer_tag"), item.get("redeemer_index"), units.get("mem"), units.get("steps")))
    return normalize_redeemers(entries)
