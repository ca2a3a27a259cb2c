"""Collapse every backend's redeemer purpose vocabulary into RedeemerTag."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import DecodeFailedError
from .models import EvalRedeemer, ExecutionUnits, RedeemerTag
from .numeric import parse_quantity

logger = logging.getLogger(__name__)

_ALIASES: Dict[str, RedeemerTag] = {}
for _tag, _names in {
    RedeemerTag.SPEND: ("spend", "spending"),
    RedeemerTag.MINT: ("mint", "minting"),
    RedeemerTag.CERT: ("cert", "certificate", "certifying", "publish"),
    RedeemerTag.REWARD: ("reward", "rewarding", "withdraw", "withdrawal", "withdrawals", "wdrl"),
    RedeemerTag.VOTE: ("vote", "voting"),
    RedeemerTag.PROPOSE: ("propose", "proposal", "proposing"),
}.items():
    for _name in _names:
        _ALIASES[_name] = _tag
        _ALIASES[f"redeemer_purpose_{_name}"] = _tag

# utxorpc RedeemerPurpose enum; 0 is UNSPECIFIED
_PURPOSE_NUMBERS: Dict[int, RedeemerTag] = {
    1: RedeemerTag.SPEND,
    2: RedeemerTag.MINT,
    3: RedeemerTag.CERT,
    4: RedeemerTag.REWARD,
    5: RedeemerTag.VOTE,
    6: RedeemerTag.PROPOSE,
}


def normalize_purpose(purpose: Union[str, int, RedeemerTag]) -> Optional[RedeemerTag]:
    """Canonical tag for a backend purpose label, or None when unrecognized."""
    if isinstance(purpose, RedeemerTag):
        return purpose
    if isinstance(purpose, int) and not isinstance(purpose, bool):
        return _PURPOSE_NUMBERS.get(purpose)
    if isinstance(purpose, str):
        return _ALIASES.get(purpose.strip().lower())
    return None


def parse_redeemer_key(key: str) -> Tuple[Optional[RedeemerTag], int]:
    """Split "purpose:index" (e.g. "spend:0") into (tag, index)."""
    purpose, sep, index = key.partition(":")
    if not sep or not (index.isascii() and index.isdigit()):
        raise DecodeFailedError("expected purpose:index", key=key)
    return normalize_purpose(purpose), int(index)


def normalize_redeemers(
    entries: Iterable[Tuple[Union[str, int], int, int, int]],
) -> List[EvalRedeemer]:
    """
    Build EvalRedeemers from (purpose, index, mem, steps) tuples.

    Unknown purposes are dropped. A repeated (tag, index) keeps the first entry.
    """
    seen = set()
    result = []
    for purpose, index, mem, steps in entries:
        tag = normalize_purpose(purpose)
        if tag is None:
            logger.debug(f"Dropping redeemer with unknown purpose {purpose!r} at index {index}")
            continue
        index = parse_quantity(index, "redeemer index")
        if (tag, index) in seen:
            logger.debug(f"Duplicate redeemer {tag.value}:{index} ignored")
            continue
        seen.add((tag, index))
        result.append(EvalRedeemer(
            tag=tag,
            index=index,
            ex_units=ExecutionUnits(
                mem=parse_quantity(mem, "memory"),
                steps=parse_quantity(steps, "steps"),
            ),
        ))
    return result


def redeemers_by_key(redeemers: Iterable[EvalRedeemer]) -> Dict[str, ExecutionUnits]:
    """Mapping form keyed "purpose:index"."""
    return {r.key: r.ex_units for r in redeemers}
