"""
Asset unit codec.

A unit is either the literal "lovelace" or a policy id (56 hex chars)
followed by an optional hex asset name, with or without a "." separator.
Names are kept as hex, never decoded.
"""

from typing import Tuple

from .errors import InvalidUnitError

LOVELACE = "lovelace"
POLICY_ID_LENGTH = 56
MAX_ASSET_NAME_LENGTH = 64
_HEX = frozenset("0123456789abcdefABCDEF")


def _is_hex(s: str) -> bool:
    return all(c in _HEX for c in s)


def parse_unit(unit: str) -> Tuple[str, str]:
    """Split a unit into (policy_id, asset_name_hex). Lovelace is ("", "")."""
    if unit == LOVELACE:
        return "", ""
    if not isinstance(unit, str) or not unit:
        raise InvalidUnitError("empty unit", operation="parse_unit", key=str(unit))

    if "." in unit:
        policy_id, _, name = unit.partition(".")
        if "." in name:
            raise InvalidUnitError("more than one separator", operation="parse_unit", key=unit)
    else:
        policy_id, name = unit[:POLICY_ID_LENGTH], unit[POLICY_ID_LENGTH:]

    if len(policy_id) != POLICY_ID_LENGTH or not _is_hex(policy_id):
        raise InvalidUnitError("policy id must be 56 hex characters", operation="parse_unit", key=unit)
    if len(name) > MAX_ASSET_NAME_LENGTH or len(name) % 2 or not _is_hex(name):
        raise InvalidUnitError("asset name must be hex of at most 32 bytes", operation="parse_unit", key=unit)
    return policy_id, name


def encode_unit(policy_id: str, asset_name: str = "", separator: str = "") -> str:
    """Inverse of parse_unit. Empty policy id and name encode to lovelace."""
    if not policy_id and not asset_name:
        return LOVELACE
    if not asset_name:
        return policy_id
    return f"{policy_id}{separator}{asset_name}"

