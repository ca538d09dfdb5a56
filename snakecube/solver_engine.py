# snakecube/solver_engine.py
# Snake-cube solver engine: depth-first backtracking of a Straight/Turn chain
# into a side x side x side occupancy grid.
#
# Solutions are streamed lazily (generators all the way down), so a caller that
# only wants the first folding pays only for the search up to it. Every
# occupy/release pair sits in a try/finally, so the grid is restored on every
# exit path, including when the consumer closes the generator early.

from __future__ import annotations
import itertools
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from snakecube.chains import ChainConfigError, validate_chain
from snakecube.geometry import (
    Cell,
    Direction,
    InvariantViolation,
    Move,
    Segment,
    directions,
    directions_from_moves,
    in_bounds,
    is_direction,
    move_label,
    move_vector,
    positions_from_moves,
    step,
    turn_options,
)

# --------------------------
# Tunables (defaults; can be tweaked by caller after construction)
# --------------------------
DEFAULT_PROGRESS_EVERY = 200_000   # attempts between progress callbacks


class Grid:
    """Occupancy of the cube, one byte per cell, row-major (x, y, z)."""

    __slots__ = ("side", "cells", "filled")

    def __init__(self, side: int):
        self.side = int(side)
        self.cells = bytearray(self.side ** 3)
        self.filled = 0

    def index(self, p: Cell) -> int:
        return (p[0] * self.side + p[1]) * self.side + p[2]

    def is_free(self, p: Cell) -> bool:
        return not self.cells[self.index(p)]

    def occupy(self, p: Cell) -> None:
        i = self.index(p)
        if self.cells[i]:
            raise InvariantViolation(f"cell {p} occupied twice")
        self.cells[i] = 1
        self.filled += 1

    def release(self, p: Cell) -> None:
        i = self.index(p)
        if not self.cells[i]:
            raise InvariantViolation(f"release of free cell {p}")
        self.cells[i] = 0
        self.filled -= 1

    @contextmanager
    def holding(self, p: Cell):
        self.occupy(p)
        try:
            yield p
        finally:
            self.release(p)

    def is_empty(self) -> bool:
        return self.filled == 0

    def occupied_cells(self) -> List[Cell]:
        return [c for c in itertools.product(range(self.side), repeat=3) if self.cells[self.index(c)]]

    def copy(self) -> "Grid":
        g = Grid(self.side)
        g.cells[:] = self.cells
        g.filled = self.filled
        return g

    def __len__(self) -> int:
        return self.filled


@dataclass(frozen=True)
class Solution:
    """One complete folding: the root plus one Move per chain edge."""
    start: Cell
    direction: Direction
    moves: Tuple[Move, ...]

    def positions(self) -> List[Cell]:
        return positions_from_moves(self.start, self.moves)

    def directions(self) -> List[Direction]:
        return directions_from_moves(self.direction, self.moves)

    def labels(self) -> List[str]:
        return [m.value for m in self.moves]

    def as_dict(self) -> Dict:
        return {
            "start": list(self.start),
            "direction": list(self.direction),
            "moves": self.labels(),
        }

    def __len__(self) -> int:
        return len(self.moves)


class SolverEngine:
    """
    Stateless inputs:
      - chain: sequence of Segment (N-1 joints for N cubes)
      - side:  cube side; side**3 must equal N

    Maintains search state and stats during run.
    """

    # --------------------------
    # Construction
    # --------------------------
    def __init__(self,
                 chain: Sequence,
                 side: int,
                 progress: Optional[Callable[[Dict], None]] = None,
                 progress_every: int = DEFAULT_PROGRESS_EVERY):
        # Inputs
        self.chain: Tuple[Segment, ...] = validate_chain(chain, side)
        self.side = int(side)

        # Tunables
        self.progress = progress
        self.progress_every = max(1, int(progress_every))

        # State of the root attempt in flight (the last one once the search is done)
        self.grid: Optional[Grid] = None
        self.path: List[Move] = []
        self.root_index = -1

        # Perf counters
        self.attempts = 0
        self.solutions_found = 0
        self.best_depth_ever = 0
        self._t0 = time.time()

    # --------------------------
    # Public helpers
    # --------------------------
    def placed_count(self) -> int:
        return self.grid.filled if self.grid is not None else 0

    def total_cubes(self) -> int:
        return len(self.chain) + 1

    def elapsed_seconds(self) -> float:
        return time.time() - self._t0

    def roots(self) -> List[Tuple[Cell, Direction]]:
        """Root (position, direction) pairs: positions row-major, directions canonical."""
        return [(p, d)
                for p in itertools.product(range(self.side), repeat=3)
                for d in directions()]

    # --------------------------
    # Search
    # --------------------------
    def solve(self, limit: Optional[int] = None) -> Iterator[Solution]:
        """All solutions over every root, in canonical order; at most `limit` if given."""
        if limit is not None and limit <= 0:
            return
        emitted = 0
        for idx, (start, direction) in enumerate(self.roots()):
            self.root_index = idx
            gen = self.search_root(start, direction)
            try:
                for sol in gen:
                    yield sol
                    emitted += 1
                    if limit is not None and emitted >= limit:
                        return
            finally:
                gen.close()

    def first(self) -> Optional[Solution]:
        for sol in self.solve(limit=1):
            return sol
        return None

    def search_root(self,
                    start: Cell,
                    direction: Direction,
                    prefix: Sequence[Move] = ()) -> Iterator[Solution]:
        """
        Solutions of one root attempt, on a fresh grid.
        `prefix` forces the first moves; each must be legal for the chain, the
        bounds and the grid, otherwise ChainConfigError.
        """
        start = tuple(int(v) for v in start)
        direction = tuple(int(v) for v in direction)
        if not in_bounds(start, self.side):
            raise ChainConfigError(f"root {start} outside a side-{self.side} cube")
        if not is_direction(direction):
            raise ChainConfigError(f"root direction {direction} is not a unit axis vector")
        if len(prefix) > len(self.chain):
            raise ChainConfigError(f"prefix of {len(prefix)} moves is longer than the chain")

        grid = Grid(self.side)
        path: List[Move] = []
        self.grid = grid
        self.path = path
        forced: List[Cell] = []
        inner = None

        grid.occupy(start)
        try:
            pos, cur = start, direction
            for depth, mv in enumerate(prefix):
                try:
                    mv = Move(mv)
                except ValueError as e:
                    raise ChainConfigError(f"prefix move {depth + 1}: unknown move {mv!r}") from e
                nd = move_vector(mv)
                nxt = step(pos, nd)
                if nd not in turn_options(self.chain[depth], cur):
                    raise ChainConfigError(f"prefix move {depth + 1} ({mv.value}) breaks the chain's {self.chain[depth].name} joint")
                if not in_bounds(nxt, self.side) or not grid.is_free(nxt):
                    raise ChainConfigError(f"prefix move {depth + 1} ({mv.value}) leaves the cube or overlaps")
                grid.occupy(nxt)
                forced.append(nxt)
                path.append(move_label(pos, nxt))
                pos, cur = nxt, nd
            self._note_depth(len(path) + 1)

            inner = self._search(grid, path, pos, cur, len(path))
            for moves in inner:
                self.solutions_found += 1
                yield Solution(start, direction, moves)
        finally:
            # unwind the recursion before releasing the prefix and the root
            if inner is not None:
                inner.close()
            for p in reversed(forced):
                grid.release(p)
            del path[:]
            grid.release(start)

    def _search(self, grid: Grid, path: List[Move], pos: Cell, cur: Direction, depth: int) -> Iterator[Tuple[Move, ...]]:
        if depth == len(self.chain):
            yield tuple(path)
            return
        side = self.side
        for nd in turn_options(self.chain[depth], cur):
            nxt = step(pos, nd)
            self.attempts += 1
            if self.progress is not None and self.attempts % self.progress_every == 0:
                self._emit_progress(depth)
            if not in_bounds(nxt, side) or not grid.is_free(nxt):
                continue
            grid.occupy(nxt)
            path.append(move_label(pos, nxt))
            try:
                self._note_depth(depth + 2)
                yield from self._search(grid, path, nxt, nd, depth + 1)
            finally:
                path.pop()
                grid.release(nxt)

    # --------------------------
    # Stats / progress
    # --------------------------
    def _note_depth(self, placed: int) -> None:
        if placed > self.best_depth_ever:
            self.best_depth_ever = placed

    def _emit_progress(self, depth: int) -> None:
        el = max(1e-6, self.elapsed_seconds())
        self.progress({
            "event": "progress",
            "root": self.root_index,
            "roots": self.side ** 3 * len(directions()),
            "placed": depth + 1,
            "best_depth": self.best_depth_ever,
            "total": self.total_cubes(),
            "attempts": self.attempts,
            "attempts_per_sec": self.attempts / el,
        })


# --------------------------
# Module-level helpers
# --------------------------
def solve(chain: Sequence, side: int, limit: Optional[int] = None) -> Iterator[Solution]:
    """Lazy stream of solutions for `chain` folded into a side-`side` cube."""
    return SolverEngine(chain, side).solve(limit=limit)


def first_solution(chain: Sequence, side: int) -> Optional[Solution]:
    return SolverEngine(chain, side).first()
