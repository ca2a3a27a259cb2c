"""Tests for the Blockfrost provider against canned REST responses."""

import json

import cbor2
import httpx
import pytest

from connector.blockfrost import BlockfrostProvider, resolve_base_url
from connector.blockfrost import adapter
from connector.errors import (
    AmbiguousResultError, APIError, ConnectorTimeoutError, DecodeFailedError, EvaluationFailedError,
    InvalidAddressError, InvalidInputError, NotFoundError, SubmissionFailedError,
)
from connector.models import (
    DatumHash, InlineDatum, OutRef, PostAlonzoOutput, PreAlonzoOutput, RedeemerTag, ScriptRef, UTxO, Value,
)

from conftest import (
    ADDRESS, DATUM_HASH, OTHER_ADDRESS, OTHER_TX_HASH, POLICY_ID, SCRIPT_HASH, STAKE_ADDRESS, TX_HASH, UNIT,
    UNIT_DATUM, mock_transport, respond_json,
)


def utxo_item(index=0, tx_hash=TX_HASH, **extra):
    item = {
        "address": ADDRESS,
        "tx_hash": tx_hash,
        "output_index": index,
        "amount": [{"unit": "lovelace", "quantity": "1500000"}],
        "block": "b" * 64,
        "data_hash": None,
        "inline_datum": None,
        "reference_script_hash": None,
    }
    item.update(extra)
    return item


def provider(routes, **kwargs) -> BlockfrostProvider:
    return BlockfrostProvider("preprodKey", "preprod", "http://bf.test", transport=mock_transport(routes), **kwargs)


class TestBaseUrl:
    def test_known_network(self):
        assert resolve_base_url("preview") == "https://cardano-preview.blockfrost.io/api/v0"

    def test_blockfrost_host_gets_version(self):
        assert resolve_base_url("mainnet", "https://cardano-mainnet.blockfrost.io/api/") == \
            "https://cardano-mainnet.blockfrost.io/api/v0"

    def test_custom_host_untouched(self):
        assert resolve_base_url("custom", "http://localhost:3000/") == "http://localhost:3000"

    def test_unknown_network(self):
        with pytest.raises(InvalidInputError):
            resolve_base_url("guildnet")


class TestUtxoQueries:
    @pytest.mark.asyncio
    async def test_listing_walks_all_pages(self):
        def page(request):
            n = int(request.url.params["page"])
            size = 100 if n == 1 else 3
            return httpx.Response(200, json=[utxo_item(i, tx_hash=f"{n:02x}" * 32) for i in range(size)])

        async with provider({f"/addresses/{ADDRESS}/utxos": page}) as p:
            utxos = await p.get_utxos_by_address(ADDRESS)
        assert len(utxos) == 103
        assert all(isinstance(u.output, PreAlonzoOutput) for u in utxos)
        assert utxos[0].output.value == Value(coin=1_500_000)

    @pytest.mark.asyncio
    async def test_unknown_address_is_empty(self):
        async with provider({}) as p:
            assert await p.get_utxos_by_address(ADDRESS) == []

    @pytest.mark.asyncio
    async def test_invalid_address(self):
        async with provider({}) as p:
            with pytest.raises(InvalidAddressError):
                await p.get_utxos_by_address("addr_test1bogus")

    @pytest.mark.asyncio
    async def test_datum_fields(self):
        items = [
            utxo_item(0, data_hash=DATUM_HASH),
            utxo_item(1, data_hash=DATUM_HASH, inline_datum=UNIT_DATUM),
        ]
        async with provider({f"/addresses/{ADDRESS}/utxos": respond_json(items)}) as p:
            hashed, inline = await p.get_utxos_by_address(ADDRESS)
        assert hashed.output.datum == DatumHash.from_hex(DATUM_HASH)
        assert inline.output.datum == InlineDatum(bytes.fromhex(UNIT_DATUM))

    @pytest.mark.asyncio
    async def test_invalid_inline_datum_fails(self):
        items = [utxo_item(0, inline_datum="d879")]
        async with provider({f"/addresses/{ADDRESS}/utxos": respond_json(items)}) as p:
            with pytest.raises(DecodeFailedError):
                await p.get_utxos_by_address(ADDRESS)

    @pytest.mark.asyncio
    async def test_reference_script_resolved(self):
        items = [utxo_item(0, reference_script_hash=SCRIPT_HASH)]
        routes = {
            f"/addresses/{ADDRESS}/utxos": respond_json(items),
            f"/scripts/{SCRIPT_HASH}": respond_json({"script_hash": SCRIPT_HASH, "type": "plutusV2"}),
            f"/scripts/{SCRIPT_HASH}/cbor": respond_json({"cbor": cbor2.dumps(b"\x01\x02").hex()}),
        }
        async with provider(routes) as p:
            (utxo,) = await p.get_utxos_by_address(ADDRESS)
        assert isinstance(utxo.output, PostAlonzoOutput)
        assert utxo.output.script_ref == ScriptRef("plutus:v2", b"\x01\x02")

    @pytest.mark.asyncio
    async def test_reference_script_failure_is_strict(self):
        items = [utxo_item(0, reference_script_hash=SCRIPT_HASH)]
        routes = {
            f"/addresses/{ADDRESS}/utxos": respond_json(items),
            f"/scripts/{SCRIPT_HASH}": respond_json({"message": "boom"}, status=500),
        }
        async with provider(routes) as p:
            with pytest.raises(APIError):
                await p.get_utxos_by_address(ADDRESS)

    @pytest.mark.asyncio
    async def test_with_unit_uses_filtered_endpoint(self):
        item = utxo_item(0, amount=[
            {"unit": "lovelace", "quantity": "2000000"},
            {"unit": UNIT, "quantity": "1"},
        ])
        async with provider({f"/addresses/{ADDRESS}/utxos/{UNIT}": respond_json([item])}) as p:
            (utxo,) = await p.get_utxos_with_unit(ADDRESS, UNIT)
        assert utxo.output.value.quantity_of(UNIT) == 1

    @pytest.mark.asyncio
    async def test_utxo_by_unit(self):
        item = utxo_item(0, amount=[{"unit": "lovelace", "quantity": "2000000"}, {"unit": UNIT, "quantity": "1"}])
        routes = {
            f"/assets/{UNIT}/addresses": respond_json([{"address": ADDRESS, "quantity": "1"}]),
            f"/addresses/{ADDRESS}/utxos/{UNIT}": respond_json([item]),
        }
        async with provider(routes) as p:
            utxo = await p.get_utxo_by_unit(UNIT)
        assert utxo.input == OutRef(TX_HASH, 0)

    @pytest.mark.asyncio
    async def test_utxo_by_unit_two_holders(self):
        holders = [{"address": ADDRESS, "quantity": "1"}, {"address": OTHER_ADDRESS, "quantity": "1"}]
        async with provider({f"/assets/{UNIT}/addresses": respond_json(holders)}) as p:
            with pytest.raises(AmbiguousResultError):
                await p.get_utxo_by_unit(UNIT)

    @pytest.mark.asyncio
    async def test_utxo_by_unit_two_utxos_at_one_holder(self):
        amount = [{"unit": "lovelace", "quantity": "2000000"}, {"unit": UNIT, "quantity": "1"}]
        routes = {
            f"/assets/{UNIT}/addresses": respond_json([{"address": ADDRESS, "quantity": "2"}]),
            f"/addresses/{ADDRESS}/utxos/{UNIT}": respond_json([
                utxo_item(0, amount=amount), utxo_item(1, amount=amount),
            ]),
        }
        async with provider(routes) as p:
            with pytest.raises(AmbiguousResultError) as exc:
                await p.get_utxo_by_unit(UNIT)
        assert exc.value.key == UNIT

    @pytest.mark.asyncio
    async def test_utxo_by_unit_no_holder(self):
        async with provider({f"/assets/{UNIT}/addresses": respond_json([])}) as p:
            with pytest.raises(NotFoundError):
                await p.get_utxo_by_unit(UNIT)

    @pytest.mark.asyncio
    async def test_out_refs_tolerate_missing_tx(self):
        outputs = {"hash": TX_HASH, "inputs": [], "outputs": [
            {"address": ADDRESS, "amount": [{"unit": "lovelace", "quantity": "5"}], "output_index": 0,
             "collateral": False},
            {"address": ADDRESS, "amount": [{"unit": "lovelace", "quantity": "7"}], "output_index": 1,
             "collateral": False},
        ]}
        async with provider({f"/txs/{TX_HASH}/utxos": respond_json(outputs)}) as p:
            utxos = await p.get_utxos_by_out_ref([(TX_HASH, 1), f"{OTHER_TX_HASH}#0", OutRef(TX_HASH, 0)])
        assert [u.input for u in utxos] == [OutRef(TX_HASH, 1), OutRef(TX_HASH, 0)]
        assert utxos[0].output.value.coin == 7

    @pytest.mark.asyncio
    async def test_out_refs_abort_on_server_error(self):
        routes = {f"/txs/{TX_HASH}/utxos": respond_json({"message": "down"}, status=500)}
        async with provider(routes) as p:
            with pytest.raises(APIError):
                await p.get_utxos_by_out_ref([(TX_HASH, 0)])


class TestChainQueries:
    @pytest.mark.asyncio
    async def test_protocol_parameters(self):
        params = {
            "min_fee_a": 44, "min_fee_b": 155381, "max_tx_size": 16384, "key_deposit": "2000000",
            "a0": 0.3, "rho": 0.003, "tau": 0.2, "price_mem": 0.0577, "price_step": 0.0000721,
            "coins_per_utxo_size": "4310", "protocol_major_ver": 9, "protocol_minor_ver": 0,
            "cost_models": {"PlutusV1": {"b": 2, "a": 1}},
            "cost_models_raw": {"PlutusV1": [10, 20], "PlutusV2": [30]},
        }
        async with provider({"/epochs/latest/parameters": respond_json(params)}) as p:
            pp = await p.get_protocol_parameters()
        assert pp.min_fee_coefficient == 44
        assert pp.min_fee_constant == 155381
        assert pp.key_deposit == 2_000_000
        assert pp.pool_influence == 0.3
        assert pp.price_mem == 0.0577
        assert pp.coins_per_utxo_byte == 4310
        assert pp.cost_models == {"PlutusV1": [10, 20], "PlutusV2": [30]}

    @pytest.mark.asyncio
    async def test_tip_and_epoch(self):
        routes = {
            "/blocks/latest": respond_json({"hash": "ff" * 32, "slot": 100, "height": 50, "epoch": 7}),
            "/epochs/latest": respond_json({"epoch": 7}),
        }
        async with provider(routes) as p:
            tip = await p.get_tip()
            assert await p.current_epoch() == 7
        assert (tip.slot, tip.height, tip.hash) == (100, 50, "ff" * 32)

    @pytest.mark.asyncio
    async def test_genesis(self):
        genesis = {"active_slots_coefficient": 0.05, "network_magic": 1, "epoch_length": 432000,
                   "system_start": 1654041600, "slot_length": 1, "security_param": 2160}
        async with provider({"/genesis": respond_json(genesis)}) as p:
            g = await p.get_genesis_parameters()
        assert g.active_slots_coefficient == 0.05
        assert g.system_start == 1654041600
        assert g.slot_length == 1.0

    @pytest.mark.asyncio
    async def test_network(self):
        async with provider({}) as p:
            assert p.network() == 0
            assert p.name == "blockfrost"

    @pytest.mark.asyncio
    async def test_delegation(self):
        account = {"stake_address": STAKE_ADDRESS, "active": True, "active_epoch": 80,
                   "pool_id": "pool1abc", "withdrawable_amount": "1234"}
        async with provider({f"/accounts/{STAKE_ADDRESS}": respond_json(account)}) as p:
            d = await p.get_delegation(STAKE_ADDRESS)
        assert (d.active, d.rewards, d.pool_id, d.epoch) == (True, 1234, "pool1abc", 80)

    @pytest.mark.asyncio
    async def test_unknown_account_is_undelegated(self):
        async with provider({}) as p:
            d = await p.get_delegation(STAKE_ADDRESS)
        assert not d.active and d.rewards == 0

    @pytest.mark.asyncio
    async def test_delegation_needs_stake_address(self):
        async with provider({}) as p:
            with pytest.raises(InvalidAddressError):
                await p.get_delegation(ADDRESS)

    @pytest.mark.asyncio
    async def test_datum(self):
        routes = {f"/scripts/datum/{DATUM_HASH}/cbor": respond_json({"cbor": UNIT_DATUM})}
        async with provider(routes) as p:
            datum = await p.get_datum(DATUM_HASH)
            with pytest.raises(NotFoundError):
                await p.get_datum("00" * 32)
        assert datum.cbor == bytes.fromhex(UNIT_DATUM)

    @pytest.mark.asyncio
    async def test_native_script(self):
        script_json = {"type": "all", "scripts": []}
        routes = {
            f"/scripts/{SCRIPT_HASH}": respond_json({"script_hash": SCRIPT_HASH, "type": "timelock"}),
            f"/scripts/{SCRIPT_HASH}/json": respond_json({"json": script_json}),
        }
        async with provider(routes) as p:
            script = await p.get_script_by_hash(SCRIPT_HASH)
        assert script.language == "native"
        assert cbor2.loads(script.script) == [1, []]


class TestTransactions:
    @pytest.mark.asyncio
    async def test_submit_falls_back_to_main_endpoint(self):
        routes = {
            "/api/submit/tx": respond_json({"message": "busy"}, status=503),
            "/tx/submit": respond_json("ff" * 32),
        }
        async with provider(routes, submit_endpoints=["http://relay.test/api/submit/tx"]) as p:
            assert await p.submit_tx(b"\x84") == "ff" * 32

    @pytest.mark.asyncio
    async def test_custom_endpoint_wins(self):
        routes = {"/api/submit/tx": respond_json("aa" * 32)}
        async with provider(routes, submit_endpoints=["http://relay.test/api/submit/tx"]) as p:
            assert await p.submit_tx(b"\x84") == "aa" * 32

    @pytest.mark.asyncio
    async def test_submit_rejected(self):
        routes = {"/tx/submit": respond_json({"error": "Bad Request", "message": "bad tx"}, status=400)}
        async with provider(routes) as p:
            with pytest.raises(SubmissionFailedError):
                await p.submit_tx(b"\x84")

    @pytest.mark.asyncio
    async def test_evaluate(self):
        body = {"type": "jsonwsp/response", "result": {"EvaluationResult": {
            "spend:0": {"memory": 1700, "steps": 476468},
            "mint:1": {"memory": 10, "steps": 20},
        }}}
        async with provider({"/utils/txs/evaluate/utxos": respond_json(body)}) as p:
            redeemers = await p.evaluate_tx(b"\x84")
        assert [(r.tag, r.index, r.ex_units.mem) for r in redeemers] == [
            (RedeemerTag.SPEND, 0, 1700), (RedeemerTag.MINT, 1, 10),
        ]

    @pytest.mark.asyncio
    async def test_evaluate_failure(self):
        body = {"result": {"EvaluationFailure": {"ScriptFailures": {}}}}
        async with provider({"/utils/txs/evaluate/utxos": respond_json(body)}) as p:
            with pytest.raises(EvaluationFailedError):
                await p.evaluate_tx(b"\x84")

    @pytest.mark.asyncio
    async def test_evaluate_sends_additional_utxos(self):
        captured = {}

        def evaluate(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"result": {"EvaluationResult": {}}})

        extra = UTxO(OutRef(TX_HASH, 0), PostAlonzoOutput(
            ADDRESS, Value.build(3, [(POLICY_ID, "01", 2)]), datum=DatumHash.from_hex(DATUM_HASH),
        ))
        async with provider({"/utils/txs/evaluate/utxos": evaluate}) as p:
            assert await p.evaluate_tx(b"\x84", [extra]) == []
        tx_in, tx_out = captured["additionalUtxoSet"][0]
        assert tx_in == {"txId": TX_HASH, "index": 0}
        assert tx_out["value"] == {"coins": 3, "assets": {f"{POLICY_ID}.01": 2}}
        assert tx_out["datum_hash"] == DATUM_HASH

    @pytest.mark.asyncio
    async def test_await_tx(self):
        calls = []

        def tx(request):
            calls.append(1)
            if len(calls) < 2:
                return httpx.Response(404)
            return httpx.Response(200, json={"hash": TX_HASH, "block": "b" * 64})

        async with provider({f"/txs/{TX_HASH}": tx}, settle_delay=0) as p:
            assert await p.await_tx(TX_HASH, check_interval=0.01) is True
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_await_tx_timeout(self):
        async with provider({}, settle_delay=0) as p:
            with pytest.raises(ConnectorTimeoutError):
                await p.await_tx(TX_HASH, check_interval=0.01, timeout=0.05)


def test_adapter_plutus_script_unwrapped():
    ref = adapter.script_ref({"type": "plutusV3"}, {"cbor": cbor2.dumps(b"\xaa").hex()})
    assert ref == ScriptRef("plutus:v3", b"\xaa")
