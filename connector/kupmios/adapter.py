"""Kupo and Ogmios JSON -> canonical model."""

import logging
from typing import Any, Dict, List, Optional

from ..errors import ConnectorError, DecodeFailedError, NotFoundError
from ..models import (
    DatumHash, Delegation, EvalRedeemer, GenesisParameters, InlineDatum, OutRef, ProtocolParameters,
    ScriptRef, Tip, UTxO, UtxoList, Value, normalize_language,
)
from ..numeric import iso_to_unix, lovelace_of, parse_int, parse_quantity, parse_ratio
from ..outputs import OutputBuilder, hex_bytes, decode_plutus_data, era_output
from ..redeemers import normalize_redeemers
from ..types import parse_unit
from .kupo import KupoClient

logger = logging.getLogger(__name__)

COST_MODEL_NAMES = {"plutus:v1": "PlutusV1", "plutus:v2": "PlutusV2", "plutus:v3": "PlutusV3"}


# ===================
# Kupo
# ===================

def value_from_kupo(value: Dict[str, Any]) -> Value:
    """{"coins": n, "assets": {"policy.name": q}}"""
    if not isinstance(value, dict):
        raise DecodeFailedError("match value is not an object")
    entries = []
    for unit, qty in (value.get("assets") or {}).items():
        policy, name = parse_unit(unit)
        entries.append((policy, name, parse_quantity(qty, unit)))
    return Value.build(parse_quantity(value.get("coins"), "coins"), entries)


def script_from_kupo(body: Optional[Dict[str, Any]], script_hash: str) -> ScriptRef:
    if not body:
        raise NotFoundError("script not indexed", operation="get_script_by_hash", key=script_hash)
    return ScriptRef(
        language=normalize_language(body.get("language", "")),
        script=hex_bytes(body.get("script", ""), "script"),
    )


def datum_from_kupo(body: Optional[Dict[str, Any]], datum_hash: str) -> InlineDatum:
    if not body or not body.get("datum"):
        raise NotFoundError("datum not indexed", operation="get_datum", key=datum_hash)
    return decode_plutus_data(body["datum"])


async def adapt_match(
    match: Dict[str, Any],
    kupo: KupoClient,
    builder: OutputBuilder,
    warnings: UtxoList,
) -> UTxO:
    """
    One Kupo match. Inline datums and reference scripts are side lookups;
    a failed lookup degrades (hash kept, script dropped) with a warning.
    """
    try:
        ref = OutRef(match["transaction_id"], match["output_index"])
        address = match["address"]
    except KeyError as e:
        raise DecodeFailedError(f"match lacks {e}")

    datum_hash = match.get("datum_hash")
    inline: Optional[InlineDatum] = None
    if datum_hash and match.get("datum_type") == "inline":
        try:
            inline = datum_from_kupo(await kupo.datum(datum_hash), datum_hash)
        except DecodeFailedError:
            raise
        except ConnectorError as e:
            warnings.warn(str(ref), f"inline datum {datum_hash} unavailable, keeping hash: {e}")

    output = await builder.build(
        address,
        value_from_kupo(match.get("value")),
        ref=str(ref),
        datum_hash=datum_hash,
        inline_datum=inline,
        script_hash=match.get("script_hash"),
        warnings=warnings,
    )
    return UTxO(input=ref, output=output)


def is_confirmed_match(match: Dict[str, Any]) -> bool:
    created = match.get("created_at") or {}
    return parse_int(created.get("slot_no")) > 0


# ===================
# Ogmios
# ===================

def value_from_ogmios(value: Dict[str, Any]) -> Value:
    """{"ada": {"lovelace": n}, "<policy>": {"<name>": q}}"""
    if not isinstance(value, dict) or "ada" not in value:
        raise DecodeFailedError("ogmios value lacks ada")
    entries = []
    for policy, names in value.items():
        if policy == "ada":
            continue
        for name, qty in names.items():
            entries.append((policy, name, parse_quantity(qty, f"{policy}.{name}")))
    return Value.build(parse_quantity(value["ada"].get("lovelace"), "lovelace"), entries)


def script_from_ogmios(script: Dict[str, Any]) -> ScriptRef:
    return ScriptRef(
        language=normalize_language(script.get("language", "")),
        script=hex_bytes(script.get("cbor", ""), "script"),
    )


def utxo_from_ogmios(u: Dict[str, Any]) -> UTxO:
    try:
        ref = OutRef(u["transaction"]["id"], u["index"])
        address = u["address"]
    except (KeyError, TypeError) as e:
        raise DecodeFailedError(f"ogmios utxo lacks {e}")
    output = era_output(
        address,
        value_from_ogmios(u.get("value")),
        datum_hash=u.get("datumHash"),
        inline_datum=u.get("datum"),
        script_ref=script_from_ogmios(u["script"]) if u.get("script") else None,
    )
    return UTxO(input=ref, output=output)


def utxo_to_ogmios(utxo: UTxO) -> Dict[str, Any]:
    """UTxO in Ogmios' additionalUtxo shape."""
    out = utxo.output
    value: Dict[str, Any] = {"ada": {"lovelace": out.value.coin}}
    for policy, names in out.value.assets.items():
        value[policy] = dict(names)
    body: Dict[str, Any] = {
        "transaction": {"id": utxo.input.tx_hash},
        "index": utxo.input.index,
        "address": out.address,
        "value": value,
    }
    if isinstance(out.datum, DatumHash):
        body["datumHash"] = out.datum.hash.hex()
    elif isinstance(out.datum, InlineDatum):
        body["datum"] = out.datum.cbor.hex()
    if out.script_ref is not None:
        body["script"] = {"language": out.script_ref.language, "cbor": out.script_ref.script.hex()}
    return body


def _bytes_of(value: Any) -> int:
    return parse_int(value.get("bytes")) if isinstance(value, dict) else parse_int(value)


def protocol_parameters(p: Dict[str, Any]) -> ProtocolParameters:
    prices = p.get("scriptExecutionPrices") or {}
    tx_units = p.get("maxExecutionUnitsPerTransaction") or {}
    block_units = p.get("maxExecutionUnitsPerBlock") or {}
    version = p.get("version") or {}
    ref_fees = p.get("minFeeReferenceScripts") or {}
    cost_models = {
        COST_MODEL_NAMES.get(lang, lang): [parse_int(v) for v in model]
        for lang, model in (p.get("plutusCostModels") or {}).items()
    }
    return ProtocolParameters(
        min_fee_constant=lovelace_of(p.get("minFeeConstant")),
        min_fee_coefficient=parse_int(p.get("minFeeCoefficient")),
        max_block_size=_bytes_of(p.get("maxBlockBodySize")),
        max_tx_size=_bytes_of(p.get("maxTransactionSize")),
        max_block_header_size=_bytes_of(p.get("maxBlockHeaderSize")),
        key_deposit=lovelace_of(p.get("stakeCredentialDeposit")),
        pool_deposit=lovelace_of(p.get("stakePoolDeposit")),
        pool_influence=parse_ratio(p.get("stakePoolPledgeInfluence"), "stakePoolPledgeInfluence"),
        monetary_expansion=parse_ratio(p.get("monetaryExpansion"), "monetaryExpansion"),
        treasury_expansion=parse_ratio(p.get("treasuryExpansion"), "treasuryExpansion"),
        decentralization_param=parse_ratio(p.get("federatedBlockProductionRatio"), "federatedBlockProductionRatio"),
        extra_entropy=str(p.get("extraEntropy") or ""),
        protocol_major_version=parse_int(version.get("major")),
        protocol_minor_version=parse_int(version.get("minor")),
        min_utxo=lovelace_of(p.get("minUtxoDepositConstant")),
        min_pool_cost=lovelace_of(p.get("minStakePoolCost")),
        price_mem=parse_ratio(prices.get("memory"), "scriptExecutionPrices.memory"),
        price_step=parse_ratio(prices.get("cpu"), "scriptExecutionPrices.cpu"),
        max_tx_ex_mem=parse_int(tx_units.get("memory")),
        max_tx_ex_steps=parse_int(tx_units.get("cpu")),
        max_block_ex_mem=parse_int(block_units.get("memory")),
        max_block_ex_steps=parse_int(block_units.get("cpu")),
        max_val_size=_bytes_of(p.get("maxValueSize")),
        collateral_percent=parse_int(p.get("collateralPercentage")),
        max_collateral_inputs=parse_int(p.get("maxCollateralInputs")),
        coins_per_utxo_byte=parse_int(p.get("minUtxoDepositCoefficient")),
        cost_models=cost_models,
        max_reference_scripts_size=_bytes_of(p.get("maxReferenceScriptsSize")),
        min_fee_reference_scripts_range=parse_int(ref_fees.get("range")),
        min_fee_reference_scripts_base=parse_ratio(ref_fees.get("base"), "minFeeReferenceScripts.base"),
        min_fee_reference_scripts_multiplier=parse_ratio(
            ref_fees.get("multiplier"), "minFeeReferenceScripts.multiplier"
        ),
    )


def genesis_parameters(g: Dict[str, Any]) -> GenesisParameters:
    slot_length = g.get("slotLength") or {}
    return GenesisParameters(
        active_slots_coefficient=parse_ratio(g.get("activeSlotsCoefficient"), "activeSlotsCoefficient"),
        update_quorum=parse_int(g.get("updateQuorum")),
        max_lovelace_supply=parse_int(g.get("maxLovelaceSupply")),
        network_magic=parse_int(g.get("networkMagic")),
        epoch_length=parse_int(g.get("epochLength")),
        system_start=iso_to_unix(g.get("startTime", ""), "startTime"),
        slots_per_kes_period=parse_int(g.get("slotsPerKesPeriod")),
        slot_length=parse_int(slot_length.get("milliseconds")) / 1000,
        max_kes_evolutions=parse_int(g.get("maxKesEvolutions")),
        security_param=parse_int(g.get("securityParameter")),
    )


def tip(point: Any, height: Any) -> Tip:
    if not isinstance(point, dict) or not point.get("id"):
        raise DecodeFailedError("chain is at origin", operation="get_tip")
    return Tip(slot=parse_int(point.get("slot")), height=parse_int(height) if height != "origin" else 0,
               hash=point["id"])


def delegation(result: Any, credential: str) -> Delegation:
    """
    rewardAccountSummaries comes back either keyed by credential or as a
    list of summaries; an absent account is undelegated with no rewards.
    """
    summary = None
    if isinstance(result, dict):
        summary = result.get(credential)
    elif isinstance(result, list):
        for item in result:
            cred = item.get("credential") or item.get("from")
            if cred == credential or len(result) == 1:
                summary = item
                break
    if not summary:
        return Delegation.inactive()

    pool = summary.get("delegate") or summary.get("stakePool") or {}
    pool_id = pool.get("id", "") if isinstance(pool, dict) else str(pool)
    return Delegation(active=bool(pool_id), rewards=lovelace_of(summary.get("rewards")), pool_id=pool_id)


def eval_redeemers(result: Any) -> List[EvalRedeemer]:
    if not isinstance(result, list):
        raise DecodeFailedError("evaluation result is not a list", operation="evaluate_tx")
    entries = []
    for item in result:
        validator, budget = item.get("validator"), item.get("budget") or {}
        if isinstance(validator, str):
            purpose, _, index = validator.partition(":")
        else:
            purpose, index = (validator or {}).get("purpose"), (validator or {}).get("index")
        entries.append((purpose, index, budget.get("memory"), budget.get("cpu")))
    return normalize_redeemers(entries)
