# snakecube/chains.py
# Chain configuration: segment spellings, validation, JSON chain files.

from __future__ import annotations
import json
import os
import re
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from snakecube.geometry import Segment

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CHAINS_DIR = os.path.join(ROOT, "chains")

# The 64-cube puzzle, F = straight joint, T = turning joint.
REFERENCE_CHAIN_TEXT = (
    "FFTTFTTT" "FFTTFTTF" "TTFTTTTT" "TTTTFTFT"
    "TTTTTFTF" "FTTTTFFT" "TFTTTTTT" "TTTTFFT"
)
REFERENCE_SIDE = 4

_SPELLINGS = {
    "s": Segment.STRAIGHT,
    "f": Segment.STRAIGHT,
    "straight": Segment.STRAIGHT,
    "t": Segment.TURN,
    "turn": Segment.TURN,
}


class ChainConfigError(ValueError):
    pass


def parse_segment(tok) -> Segment:
    if isinstance(tok, Segment):
        return tok
    key = str(tok).strip().lower()
    seg = _SPELLINGS.get(key)
    if seg is None:
        raise ChainConfigError(f"unrecognized segment {tok!r} (expected S/F/straight or T/turn)")
    return seg


def parse_chain(spec: Union[str, Iterable]) -> Tuple[Segment, ...]:
    """
    Accepts either:
      1) a string: "FFTT...", "S T T", "[F,F,T]" or "straight turn" (one letter
         per joint unless the token is a whole word)
      2) a sequence of tokens or Segment values
    """
    if isinstance(spec, str):
        out = []
        for tok in re.split(r"[\s,;\[\]]+", spec):
            if not tok:
                continue
            if tok.lower() in _SPELLINGS:
                out.append(_SPELLINGS[tok.lower()])
            else:
                out.extend(parse_segment(c) for c in tok)
        return tuple(out)
    return tuple(parse_segment(t) for t in spec)


def chain_to_text(chain: Sequence[Segment]) -> str:
    return "".join(Segment(s).value for s in chain)


def integer_cube_root(n: int) -> Optional[int]:
    if n < 1:
        return None
    r = round(n ** (1.0 / 3.0))
    for c in (r - 1, r, r + 1):
        if c >= 1 and c * c * c == n:
            return c
    return None


def side_for_chain(chain: Sequence[Segment]) -> int:
    """Side of the target cube for a chain of N-1 joints (N cubes)."""
    n = len(chain) + 1
    side = integer_cube_root(n)
    if side is None:
        raise ChainConfigError(f"chain of {n} cubes does not fill a cube (N is not a perfect cube)")
    return side


def validate_chain(chain: Sequence, side: int) -> Tuple[Segment, ...]:
    """Normalize and check a chain against the target side; raise before any search."""
    segs = parse_chain(chain)
    side = int(side)
    if side < 1:
        raise ChainConfigError(f"side must be >= 1, got {side}")
    if len(segs) + 1 != side ** 3:
        raise ChainConfigError(
            f"chain has {len(segs) + 1} cubes but a side-{side} cube needs {side ** 3}"
        )
    return segs


def reference_chain() -> Tuple[Segment, ...]:
    return parse_chain(REFERENCE_CHAIN_TEXT)


# ---------- IO helpers ----------
def load_chain_file(path: str) -> Tuple[str, Tuple[Segment, ...], int]:
    """
    Chain file (JSON):
      {"name": "reference", "chain": "FFTT..." | ["S","T",...], "side": 4}
    "side" is optional and derived from the chain length when missing.
    Returns (name, chain, side).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ChainConfigError(f"{path}: not valid JSON ({e})") from e
    if not isinstance(data, dict) or "chain" not in data:
        raise ChainConfigError(f"{path}: expected an object with a 'chain' field")
    name = str(data.get("name") or os.path.splitext(os.path.basename(path))[0])
    chain = parse_chain(data["chain"])
    side = data.get("side")
    side = side_for_chain(chain) if side is None else int(side)
    return name, validate_chain(chain, side), side


def save_chain_file(path: str, name: str, chain: Sequence[Segment], side: Optional[int] = None):
    payload = {"name": name, "chain": chain_to_text(chain)}
    if side is not None:
        payload["side"] = int(side)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def list_chain_files(directory: str = CHAINS_DIR) -> List[str]:
    if not os.path.isdir(directory):
        return []
    return sorted(os.path.join(directory, n) for n in os.listdir(directory) if n.endswith(".json"))
