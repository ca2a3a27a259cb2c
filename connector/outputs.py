"""
Era-aware output construction.

An output is post-Alonzo iff it carries a datum hash, an inline datum or a
reference script; otherwise it is a plain pre-Alonzo (address, value) pair.
An inline datum wins over a datum hash when a backend reports both.
"""

import io
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Union

import cbor2

from .errors import ConnectorError, DecodeFailedError
from .models import (
    DatumHash, InlineDatum, Output, PostAlonzoOutput, PreAlonzoOutput, ScriptRef, UtxoList, Value,
    NATIVE, TAG_LANGUAGES, normalize_address,
)

logger = logging.getLogger(__name__)

ScriptResolver = Callable[[str], Awaitable[ScriptRef]]


def hex_bytes(raw: Union[bytes, str], what: str) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    try:
        return bytes.fromhex(raw)
    except (TypeError, ValueError):
        raise DecodeFailedError(f"{what} is not valid hex", key=str(raw)[:120])


def decode_cbor(raw: Union[bytes, str], what: str = "cbor") -> Any:
    """Decode exactly one CBOR item; trailing bytes are an error."""
    data = hex_bytes(raw, what)
    fp = io.BytesIO(data)
    try:
        item = cbor2.CBORDecoder(fp).decode()
    except (cbor2.CBORDecodeError, ValueError, TypeError, IndexError, EOFError) as e:
        raise DecodeFailedError(f"{what} does not decode: {e}", key=data.hex()[:120])
    if fp.tell() != len(data):
        raise DecodeFailedError(f"{what} has trailing bytes", key=data.hex()[:120])
    return item


def _check_plutus_data(item: Any):
    if isinstance(item, cbor2.CBORTag):
        _check_plutus_data(item.value)
    elif isinstance(item, bool) or not isinstance(item, (int, bytes, list, tuple, Mapping)):
        raise DecodeFailedError(f"not plutus data: {type(item).__name__}")
    elif isinstance(item, (list, tuple)):
        for x in item:
            _check_plutus_data(x)
    elif isinstance(item, Mapping):
        for k, v in item.items():
            _check_plutus_data(k)
            _check_plutus_data(v)


def decode_plutus_data(raw: Union[bytes, str]) -> InlineDatum:
    """Strictly decode datum CBOR into Plutus data."""
    data = hex_bytes(raw, "datum")
    item = decode_cbor(data, "datum")
    _check_plutus_data(item)
    return InlineDatum(cbor=data, data=item)


def _datum_hash(datum_hash: Union[str, bytes, DatumHash]) -> DatumHash:
    if isinstance(datum_hash, DatumHash):
        return datum_hash
    if isinstance(datum_hash, bytes):
        return DatumHash(datum_hash)
    return DatumHash.from_hex(datum_hash)


def era_output(
    address: str,
    value: Value,
    *,
    datum_hash: Union[str, bytes, DatumHash, None] = None,
    inline_datum: Union[str, bytes, InlineDatum, None] = None,
    script_ref: Optional[ScriptRef] = None,
    post_alonzo: bool = False,
) -> Output:
    """
    Pick the output shape from the fields present.

    `post_alonzo` forces the post-Alonzo shape, for outputs known to carry a
    reference script that could not be resolved.
    """
    address = normalize_address(address)
    if inline_datum is not None:
        datum = inline_datum if isinstance(inline_datum, InlineDatum) else decode_plutus_data(inline_datum)
    elif datum_hash:
        datum = _datum_hash(datum_hash)
    else:
        datum = None

    if datum is None and script_ref is None and not post_alonzo:
        return PreAlonzoOutput(address=address, value=value)
    return PostAlonzoOutput(address=address, value=value, datum=datum, script_ref=script_ref)


class OutputBuilder:
    """
    era_output plus reference-script resolution by hash.

    Lookup failures propagate unless `best_effort` is set, in which case the
    script is omitted and a warning recorded.
    """

    def __init__(self, resolve_script: Optional[ScriptResolver] = None, best_effort: bool = False):
        self.resolve_script = resolve_script
        self.best_effort = best_effort

    async def build(
        self,
        address: str,
        value: Value,
        *,
        ref: str = "",
        datum_hash: Union[str, bytes, DatumHash, None] = None,
        inline_datum: Union[str, bytes, InlineDatum, None] = None,
        script_ref: Optional[ScriptRef] = None,
        script_hash: Optional[str] = None,
        warnings: Optional[UtxoList] = None,
    ) -> Output:
        unresolved = False
        if script_ref is None and script_hash:
            try:
                if self.resolve_script is None:
                    raise DecodeFailedError("reference script hash without a resolver", key=script_hash)
                script_ref = await self.resolve_script(script_hash)
            except ConnectorError as e:
                if not self.best_effort:
                    raise
                unresolved = True
                message = f"reference script {script_hash} dropped: {e}"
                if warnings is not None:
                    warnings.warn(ref, message)
                else:
                    logger.warning(f"{ref}: {message}")
        return era_output(
            address, value,
            datum_hash=datum_hash, inline_datum=inline_datum,
            script_ref=script_ref, post_alonzo=unresolved,
        )


def _value_from_primitive(item: Any) -> Value:
    if isinstance(item, int) and not isinstance(item, bool):
        return Value(coin=item)
    if not isinstance(item, (list, tuple)) or len(item) != 2 or not isinstance(item[1], Mapping):
        raise DecodeFailedError("malformed output value")
    coin, multiasset = item
    entries = []
    for policy, names in multiasset.items():
        if not isinstance(policy, bytes) or not isinstance(names, Mapping):
            raise DecodeFailedError("malformed multi-asset entry")
        for name, qty in names.items():
            if not isinstance(name, bytes):
                raise DecodeFailedError("malformed asset name")
            entries.append((policy.hex(), name.hex(), qty))
    return Value.build(coin, entries)


def _script_from_primitive(item: Any) -> ScriptRef:
    if isinstance(item, cbor2.CBORTag) and item.tag == 24:
        item = item.value
    inner = decode_cbor(item, "script ref") if isinstance(item, bytes) else item
    if not isinstance(inner, (list, tuple)) or len(inner) != 2 or inner[0] not in TAG_LANGUAGES:
        raise DecodeFailedError("malformed script ref")
    language = TAG_LANGUAGES[inner[0]]
    body = cbor2.dumps(inner[1], canonical=True) if language == NATIVE else inner[1]
    if not isinstance(body, bytes):
        raise DecodeFailedError("malformed script body", key=language)
    return ScriptRef(language=language, script=body)


def decode_output_cbor(raw: Union[bytes, str]) -> Output:
    """Decode a ledger TransactionOutput (legacy array or Babbage map)."""
    item = decode_cbor(raw, "output")
    datum_hash = inline = script = None

    if isinstance(item, (list, tuple)):
        if len(item) not in (2, 3):
            raise DecodeFailedError(f"legacy output has {len(item)} fields")
        address, value = item[0], item[1]
        if len(item) == 3:
            datum_hash = item[2]
    elif isinstance(item, Mapping):
        if 0 not in item or 1 not in item:
            raise DecodeFailedError("output map lacks address or value")
        address, value = item[0], item[1]
        option = item.get(2)
        if option is not None:
            if not isinstance(option, (list, tuple)) or len(option) != 2 or option[0] not in (0, 1):
                raise DecodeFailedError("malformed datum option")
            if option[0] == 0:
                datum_hash = option[1]
            else:
                tagged = option[1]
                inline = tagged.value if isinstance(tagged, cbor2.CBORTag) else tagged
                if not isinstance(inline, bytes):
                    raise DecodeFailedError("malformed inline datum")
        if item.get(3) is not None:
            script = _script_from_primitive(item[3])
    else:
        raise DecodeFailedError(f"output is a {type(item).__name__}")

    if not isinstance(address, bytes):
        raise DecodeFailedError("output address is not bytes")
    if datum_hash is not None and not isinstance(datum_hash, bytes):
        raise DecodeFailedError("datum hash is not bytes")
    return era_output(
        normalize_address(address), _value_from_primitive(value),
        datum_hash=datum_hash, inline_datum=inline, script_ref=script,
    )
