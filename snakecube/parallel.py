# snakecube/parallel.py
# Root-level fan-out: every (start, direction) root attempt runs as one task on
# a multiprocessing pool. Each worker builds its own engine, so no grid is ever
# shared between concurrently running branches.

from __future__ import annotations
import itertools
import multiprocessing
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from snakecube.chains import chain_to_text, parse_chain, validate_chain
from snakecube.solver_engine import DEFAULT_PROGRESS_EVERY, SolverEngine, Solution

DEFAULT_FAN_OUT = "none"
DEFAULT_CHUNKSIZE = 1


class FanOut(str, Enum):
    NONE = "none"     # single-threaded reference search
    ROOTS = "roots"   # one task per root attempt


def init_worker(chain_text: str, side: int):
    """Initialize worker with the chain and side; one engine per process."""
    global ENGINE
    ENGINE = SolverEngine(parse_chain(chain_text), side)


def solve_root(task) -> Tuple[int, List[Solution], int]:
    """Runs one root attempt. Returns (root index, solutions, attempts spent)."""
    idx, start, direction, per_root_limit = task
    before = ENGINE.attempts
    sols = list(itertools.islice(ENGINE.search_root(start, direction), per_root_limit))
    return idx, sols, ENGINE.attempts - before


def solve_parallel(chain: Sequence,
                   side: int,
                   processes: Optional[int] = None,
                   per_root_limit: Optional[int] = None,
                   limit: Optional[int] = None,
                   chunksize: int = DEFAULT_CHUNKSIZE) -> Iterator[Solution]:
    """
    Same sequence as the single-threaded search (when per_root_limit is None):
    results come back through imap in canonical root order. Each root's
    solutions are collected by its worker before being handed over, so
    per_root_limit caps that buffer. Stopping early terminates the pool.
    """
    segs = validate_chain(chain, side)
    roots = SolverEngine(segs, side).roots()
    tasks = [(i, start, d, per_root_limit) for i, (start, d) in enumerate(roots)]
    return _stream(segs, side, tasks, processes, limit, chunksize)


def _stream(segs, side, tasks, processes, limit, chunksize) -> Iterator[Solution]:
    if limit is not None and limit <= 0:
        return
    pool = multiprocessing.Pool(processes,
                                initializer=init_worker,
                                initargs=(chain_to_text(segs), int(side)))
    try:
        emitted = 0
        for _idx, sols, _attempts in pool.imap(solve_root, tasks, max(1, int(chunksize))):
            for sol in sols:
                yield sol
                emitted += 1
                if limit is not None and emitted >= limit:
                    return
    finally:
        pool.terminate()
        pool.join()


def solve_with_policy(chain: Sequence,
                      side: int,
                      fan_out=DEFAULT_FAN_OUT,
                      processes: Optional[int] = None,
                      limit: Optional[int] = None,
                      progress=None,
                      progress_every: int = DEFAULT_PROGRESS_EVERY) -> Iterator[Solution]:
    """Dispatch on the fan-out policy; progress events come from the single-process search only."""
    policy = FanOut(fan_out)
    if policy is FanOut.ROOTS:
        return solve_parallel(chain, side, processes=processes, limit=limit)
    engine = SolverEngine(chain, side, progress=progress, progress_every=progress_every)
    return engine.solve(limit=limit)
