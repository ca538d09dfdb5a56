# snakecube/geometry.py
# Cube-lattice geometry for the snake chain: unit directions, the turn
# relation between consecutive segments, bounds and move labels.
#
# Everything here is pure. Positions and directions are plain int 3-tuples,
# positions use the [0, side-1] origin convention on every axis.

from __future__ import annotations
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

Cell = Tuple[int, int, int]
Direction = Tuple[int, int, int]


class InvariantViolation(RuntimeError):
    """Impossible geometry or grid state; always a bug, never a puzzle property."""


class InvalidDirection(InvariantViolation):
    pass


class Segment(str, Enum):
    """Joint between cube i and cube i+1 of the chain."""
    STRAIGHT = "S"
    TURN = "T"


class Move(str, Enum):
    FORWARD = "Forward"
    BACKWARD = "Backward"
    LEFT = "Left"
    RIGHT = "Right"
    UP = "Up"
    DOWN = "Down"


# Canonical order; roots and turn candidates are enumerated in this order.
_DIRECTIONS: Tuple[Direction, ...] = (
    (1,0,0),(-1,0,0),(0,1,0),(0,-1,0),(0,0,1),(0,0,-1)
)

# World-axis label convention: +x Forward, +y Right, +z Up.
_MOVE_OF: dict = {
    (1,0,0): Move.FORWARD,
    (-1,0,0): Move.BACKWARD,
    (0,1,0): Move.RIGHT,
    (0,-1,0): Move.LEFT,
    (0,0,1): Move.UP,
    (0,0,-1): Move.DOWN,
}
_VECTOR_OF: dict = {m: d for d, m in _MOVE_OF.items()}

# turn_options is on the hot path; precompute per direction
_ORTHOGONAL: dict = {
    d: tuple(o for o in _DIRECTIONS if o[0]*d[0] + o[1]*d[1] + o[2]*d[2] == 0)
    for d in _DIRECTIONS
}


def directions() -> Tuple[Direction, ...]:
    return _DIRECTIONS


def dot(a: Direction, b: Direction) -> int:
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


def is_direction(d) -> bool:
    return tuple(d) in _ORTHOGONAL


def turn_options(segment: Segment, current: Direction) -> Tuple[Direction, ...]:
    """
    Directions the next edge may take after `current`:
      - Straight: (current,)
      - Turn:     the 4 directions orthogonal to current, canonical order
    """
    opts = _ORTHOGONAL.get(current)
    if opts is None:
        raise InvalidDirection(f"not a unit axis direction: {current!r}")
    if segment == Segment.STRAIGHT:
        return (current,)
    return opts


def step(p: Cell, d: Direction) -> Cell:
    return (p[0] + d[0], p[1] + d[1], p[2] + d[2])


def in_bounds(p: Cell, side: int) -> bool:
    return 0 <= p[0] < side and 0 <= p[1] < side and 0 <= p[2] < side


def move_label(frm: Cell, to: Cell) -> Move:
    delta = (to[0] - frm[0], to[1] - frm[1], to[2] - frm[2])
    mv = _MOVE_OF.get(delta)
    if mv is None:
        raise InvariantViolation(f"non-adjacent step {frm} -> {to}")
    return mv


def move_vector(move: Move) -> Direction:
    return _VECTOR_OF[Move(move)]


def positions_from_moves(start: Cell, moves: Iterable[Move]) -> List[Cell]:
    """Replay a move path from `start`; the root is included."""
    cur = tuple(start)
    out = [cur]
    for mv in moves:
        cur = step(cur, move_vector(mv))
        out.append(cur)
    return out


def directions_from_moves(root: Direction, moves: Sequence[Move]) -> List[Direction]:
    return [tuple(root)] + [move_vector(mv) for mv in moves]
