"""Blockfrost JSON -> canonical model."""

import logging
from typing import Any, Dict, List, Optional

import cbor2
from pycardano import NativeScript
from pycardano.exception import DeserializeException

from ..errors import DecodeFailedError, EvaluationFailedError
from ..models import (
    DatumHash, Delegation, EvalRedeemer, GenesisParameters, InlineDatum, OutRef, ProtocolParameters,
    ScriptRef, Tip, UTxO, Value, NATIVE, normalize_language,
)
from ..numeric import parse_int, parse_quantity, parse_ratio
from ..outputs import OutputBuilder, decode_cbor
from ..redeemers import normalize_redeemers
from ..types import encode_unit

logger = logging.getLogger(__name__)


def value_from_amounts(amounts: List[Dict[str, Any]]) -> Value:
    """[{"unit": "lovelace", "quantity": "..."}, ...] -> Value."""
    if not isinstance(amounts, list):
        raise DecodeFailedError("amount is not a list")
    try:
        return Value.from_units((a["unit"], parse_quantity(a["quantity"], a["unit"])) for a in amounts)
    except (KeyError, TypeError) as e:
        raise DecodeFailedError(f"malformed amount entry: {e}")


async def adapt_utxo(item: Dict[str, Any], builder: OutputBuilder, tx_hash: Optional[str] = None) -> UTxO:
    """
    Address-UTxO items carry their tx_hash; /txs/{h}/utxos outputs do not,
    so the caller passes it.
    """
    try:
        ref = OutRef(tx_hash or item["tx_hash"], item["output_index"])
        address = item["address"]
    except KeyError as e:
        raise DecodeFailedError(f"utxo item lacks {e}")
    output = await builder.build(
        address,
        value_from_amounts(item.get("amount")),
        ref=str(ref),
        datum_hash=item.get("data_hash"),
        inline_datum=item.get("inline_datum"),
        script_hash=item.get("reference_script_hash"),
    )
    return UTxO(input=ref, output=output)


def script_ref(info: Dict[str, Any], cbor: Dict[str, Any]) -> ScriptRef:
    """/scripts/{h} type plus /scripts/{h}/cbor body. Plutus CBOR is unwrapped to the inner bytes."""
    language = normalize_language(info.get("type", ""))
    raw = (cbor or {}).get("cbor")
    if not raw:
        raise DecodeFailedError("script has no CBOR body", key=info.get("script_hash"))
    inner = decode_cbor(raw, "script")
    if language == NATIVE:
        return ScriptRef(language=language, script=bytes.fromhex(raw))
    if not isinstance(inner, bytes):
        raise DecodeFailedError("plutus script CBOR is not a byte string", key=info.get("script_hash"))
    return ScriptRef(language=language, script=inner)


def protocol_parameters(p: Dict[str, Any]) -> ProtocolParameters:
    raw_models = p.get("cost_models_raw") or p.get("cost_models") or {}
    cost_models = {}
    for lang, model in raw_models.items():
        values = list(model.values()) if isinstance(model, dict) else list(model or [])
        cost_models[lang] = [parse_int(v, f"cost_models.{lang}") for v in values]

    return ProtocolParameters(
        min_fee_constant=parse_int(p.get("min_fee_b")),
        min_fee_coefficient=parse_int(p.get("min_fee_a")),
        max_block_size=parse_int(p.get("max_block_size")),
        max_tx_size=parse_int(p.get("max_tx_size")),
        max_block_header_size=parse_int(p.get("max_block_header_size")),
        key_deposit=parse_int(p.get("key_deposit")),
        pool_deposit=parse_int(p.get("pool_deposit")),
        pool_influence=parse_ratio(p.get("a0"), "a0"),
        monetary_expansion=parse_ratio(p.get("rho"), "rho"),
        treasury_expansion=parse_ratio(p.get("tau"), "tau"),
        decentralization_param=parse_ratio(p.get("decentralisation_param"), "decentralisation_param"),
        extra_entropy=p.get("extra_entropy") or "",
        protocol_major_version=parse_int(p.get("protocol_major_ver")),
        protocol_minor_version=parse_int(p.get("protocol_minor_ver")),
        min_utxo=parse_int(p.get("min_utxo")),
        min_pool_cost=parse_int(p.get("min_pool_cost")),
        price_mem=parse_ratio(p.get("price_mem"), "price_mem"),
        price_step=parse_ratio(p.get("price_step"), "price_step"),
        max_tx_ex_mem=parse_int(p.get("max_tx_ex_mem")),
        max_tx_ex_steps=parse_int(p.get("max_tx_ex_steps")),
        max_block_ex_mem=parse_int(p.get("max_block_ex_mem")),
        max_block_ex_steps=parse_int(p.get("max_block_ex_steps")),
        max_val_size=parse_int(p.get("max_val_size")),
        collateral_percent=parse_int(p.get("collateral_percent")),
        max_collateral_inputs=parse_int(p.get("max_collateral_inputs")),
        coins_per_utxo_word=parse_int(p.get("coins_per_utxo_word")),
        coins_per_utxo_byte=parse_int(p.get("coins_per_utxo_size")),
        cost_models=cost_models,
        min_fee_reference_scripts_base=parse_ratio(
            p.get("min_fee_ref_script_cost_per_byte"), "min_fee_ref_script_cost_per_byte"
        ),
    )


def genesis_parameters(g: Dict[str, Any]) -> GenesisParameters:
    return GenesisParameters(
        active_slots_coefficient=parse_ratio(g.get("active_slots_coefficient")),
        update_quorum=parse_int(g.get("update_quorum")),
        max_lovelace_supply=parse_int(g.get("max_lovelace_supply")),
        network_magic=parse_int(g.get("network_magic")),
        epoch_length=parse_int(g.get("epoch_length")),
        system_start=parse_int(g.get("system_start")),
        slots_per_kes_period=parse_int(g.get("slots_per_kes_period")),
        slot_length=parse_ratio(g.get("slot_length")),
        max_kes_evolutions=parse_int(g.get("max_kes_evolutions")),
        security_param=parse_int(g.get("security_param")),
    )


def delegation(account: Dict[str, Any]) -> Delegation:
    pool_id = account.get("pool_id") or ""
    return Delegation(
        active=bool(pool_id) and bool(account.get("active")),
        rewards=parse_int(account.get("withdrawable_amount"), "withdrawable_amount"),
        pool_id=pool_id,
        epoch=account.get("active_epoch"),
    )


def tip(block: Dict[str, Any]) -> Tip:
    if not block.get("hash"):
        raise DecodeFailedError("block has no hash", operation="get_tip")
    return Tip(slot=parse_int(block.get("slot")), height=parse_int(block.get("height")), hash=block["hash"])


def additional_utxo(utxo: UTxO) -> List[Dict[str, Any]]:
    """UTxO in the evaluator's additionalUtxoSet shape: [txIn, txOut]."""
    out = utxo.output
    assets = {
        encode_unit(policy, name, "."): qty
        for policy, names in out.value.assets.items()
        for name, qty in names.items()
    }
    tx_out: Dict[str, Any] = {"address": out.address, "value": {"coins": out.value.coin, "assets": assets}}
    if isinstance(out.datum, DatumHash):
        tx_out["datum_hash"] = out.datum.hash.hex()
    elif isinstance(out.datum, InlineDatum):
        tx_out["datum"] = out.datum.cbor.hex()
    if out.script_ref is not None:
        script = out.script_ref.script
        if out.script_ref.is_plutus:
            script = cbor2.dumps(script)
        tx_out["script"] = {out.script_ref.language: script.hex()}
    return [{"txId": utxo.input.tx_hash, "index": utxo.input.index}, tx_out]


def eval_redeemers(response: Any) -> List[EvalRedeemer]:
    """
    Evaluator response, either the wrapped {"result": {"EvaluationResult": {...}}}
    shape or the list of {"validator", "budget"} entries.
    """
    if not isinstance(response, dict):
        raise DecodeFailedError("evaluation response is not an object", operation="evaluate_tx")
    if "error" in response and response.get("result") is None:
        raise EvaluationFailedError(f"evaluation failed: {response['error']}", operation="evaluate_tx")

    result = response.get("result")
    if isinstance(result, dict):
        if "EvaluationFailure" in result:
            raise EvaluationFailedError(f"evaluation failed: {result['EvaluationFailure']}", operation="evaluate_tx")
        entries = []
        for key, units in (result.get("EvaluationResult") or {}).items():
            purpose, _, index = key.partition(":")
            entries.append((purpose, index, units.get("memory"), units.get("steps")))
        return normalize_redeemers(entries)
    if isinstance(result, list):
        entries = []
        for item in result:
            validator, budget = item.get("validator", {}), item.get("budget", {})
            entries.append((validator.get("purpose"), validator.get("index"), budget.get("memory"), budget.get("cpu")))
        return normalize_redeemers(entries)
    raise DecodeFailedError("evaluation response has no result", operation="evaluate_tx")


def native_script_ref(body: Dict[str, Any]) -> ScriptRef:
    """/scripts/{h}/json body for timelock scripts, re-encoded through pycardano."""
    script_json = (body or {}).get("json")
    if not isinstance(script_json, dict):
        raise DecodeFailedError("native script has no JSON body")
    try:
        script = NativeScript.from_dict(script_json)
    except (DeserializeException, KeyError, TypeError, ValueError) as e:
        raise DecodeFailedError(f"malformed native script: {e}")
    return ScriptRef(language=NATIVE, script=script.to_cbor())
