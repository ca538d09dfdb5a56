# snakecube/symmetry.py
from __future__ import annotations
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple
import itertools

from snakecube.geometry import Cell

Transform = Tuple[Tuple[int, int, int], Tuple[int, int, int]]

# --- symmetry transforms (24 rotations, optional mirrors) ---

def _perm_parity(perm: Tuple[int, int, int]) -> int:
    inv = 0
    for i in range(3):
        for j in range(i + 1, 3):
            if perm[i] > perm[j]:
                inv += 1
    return 1 if (inv % 2 == 0) else -1

def generate_transforms(include_mirror: bool = True) -> List[Transform]:
    """Axis permutation + sign flips; 24 proper rotations, 48 with mirrors."""
    mats = []
    for perm in itertools.permutations((0,1,2), 3):
        parity = _perm_parity(perm)
        for signs in itertools.product((1,-1), repeat=3):
            det = parity * signs[0] * signs[1] * signs[2]
            if det == 1 or (include_mirror and det == -1):
                mats.append((perm, signs))
    return mats

IDENTITY: Transform = ((0,1,2), (1,1,1))

def apply_transform(p: Cell, tfm: Transform, side: int) -> Cell:
    """Map a cell of a side-`side` cube onto the cube; flips reflect about the centre."""
    perm, signs = tfm
    hi = side - 1
    return (
        p[perm[0]] if signs[0] == 1 else hi - p[perm[0]],
        p[perm[1]] if signs[1] == 1 else hi - p[perm[1]],
        p[perm[2]] if signs[2] == 1 else hi - p[perm[2]],
    )

def transform_path(positions: Sequence[Cell], tfm: Transform, side: int) -> Tuple[Cell, ...]:
    return tuple(apply_transform(p, tfm, side) for p in positions)

# --- canonical keys ---

def canonical_key(positions: Sequence[Cell], side: int, include_mirror: bool = True) -> Tuple[Cell, ...]:
    """
    Lexicographically smallest image of the placed-cell sequence over the
    cube's symmetry group. Two foldings are congruent iff their keys match.
    The sequence keeps chain order, so a folding and its reversal differ.
    """
    pts = [tuple(map(int, p)) for p in positions]
    best = None
    for tfm in generate_transforms(include_mirror):
        tup = transform_path(pts, tfm, side)
        if best is None or tup < best:
            best = tup
    return best if best is not None else ()

def is_canonical(positions: Sequence[Cell], side: int, include_mirror: bool = True) -> bool:
    return tuple(tuple(p) for p in positions) == canonical_key(positions, side, include_mirror)

def distinct_foldings(solutions: Iterable, side: int, include_mirror: bool = True) -> Iterator:
    """First solution of each symmetry class, in input order (consumed lazily)."""
    seen = set()
    for sol in solutions:
        key = canonical_key(sol.positions(), side, include_mirror)
        if key not in seen:
            seen.add(key)
            yield sol

def group_by_folding(solutions: Iterable, side: int, include_mirror: bool = True) -> Dict[Tuple[Cell, ...], List]:
    groups: Dict[Tuple[Cell, ...], List] = {}
    for sol in solutions:
        groups.setdefault(canonical_key(sol.positions(), side, include_mirror), []).append(sol)
    return groups
