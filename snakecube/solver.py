# snakecube/solver.py
# Snake-cube driver: load a chain, run the engine, print the first solution(s).
#
# Console lines carry a bracketed tag; progress/solution/done events are also
# appended as JSON lines to --progress-jsonl when given.

from __future__ import annotations
import argparse
import json
import os
import sys
import time
from typing import List, Optional

from snakecube.chains import (
    CHAINS_DIR,
    ChainConfigError,
    load_chain_file,
    parse_chain,
    side_for_chain,
    validate_chain,
)
from snakecube.parallel import DEFAULT_FAN_OUT, FanOut, solve_with_policy
from snakecube.solver_engine import DEFAULT_PROGRESS_EVERY, Solution

DEFAULT_CHAIN_FILE = os.path.join(CHAINS_DIR, "reference.json")
LOG_PERIOD = 5.0   # seconds between console progress lines


def ensure_dir(p: str):
    if p and not os.path.isdir(p):
        os.makedirs(p, exist_ok=True)


# ---------- progress emitters ----------
def make_emit_progress(stream_path: Optional[str] = None, quiet: bool = False):
    if stream_path:
        ensure_dir(os.path.dirname(os.path.abspath(stream_path)))
    last_echo = [0.0]

    def emit(payload: dict):
        if stream_path:
            with open(stream_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        if quiet or payload.get("event") != "progress":
            return
        now = time.monotonic()
        if now - last_echo[0] < LOG_PERIOD:
            return
        last_echo[0] = now
        line = (f"[solve] root {payload.get('root', 0) + 1}/{payload.get('roots', '?')}"
                f" | placed {payload.get('placed', 0)}/{payload.get('total', '?')}"
                f" | best {payload.get('best_depth', 0)}"
                f" | rate {int(payload.get('attempts_per_sec', 0))}/s")
        print(line, flush=True)
    return emit


# ---------- presentation ----------
def format_solution(sol: Solution, number: int = 1) -> str:
    lines = [f"Solution {number}: start {sol.start}, direction {sol.direction}"]
    for i, label in enumerate(sol.labels(), 1):
        lines.append(f"{i:>3}. {label}")
    return "\n".join(lines)


# ---------- CLI ----------
def build_argparser():
    p = argparse.ArgumentParser(
        description=(
            "Snake cube solver: fold a chain of straight/turning joints into a solid cube.\n\n"
            "Examples:\n"
            "  python run_solver.py\n"
            "  python run_solver.py chains/mini2.json --max-results 3\n"
            "  python run_solver.py --chain STTTTTT --side 2\n"
            "  python run_solver.py chains/reference.json --fan-out roots --processes 8\n"
            "  python run_solver.py --progress-jsonl logs/progress.jsonl\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    p.add_argument("chain_file", nargs="?", default=DEFAULT_CHAIN_FILE,
                   help="Path to chain JSON (default: chains/reference.json)")

    p.add_argument("--chain", default=None, metavar="SEGMENTS",
                   help="Inline chain, e.g. FFTTFTTT... (S/F = straight, T = turn). Overrides the chain file.")

    p.add_argument("--side", type=int, default=None,
                   help="Cube side. Default: from the chain file, else the cube root of the cube count.")

    p.add_argument("--max-results", type=int, default=1, metavar="N",
                   help="Print up to N solutions in canonical search order. Default: 1.")

    p.add_argument("--all", action="store_true",
                   help="Print every solution (overrides --max-results).")

    p.add_argument("--fan-out", choices=[f.value for f in FanOut], default=DEFAULT_FAN_OUT,
                   help="Parallelism: 'none' (single process) or 'roots' (one task per root attempt).")

    p.add_argument("--processes", type=int, default=None, metavar="N",
                   help="Worker processes for --fan-out roots (default: CPU count).")

    p.add_argument("--progress-every", type=int, default=DEFAULT_PROGRESS_EVERY, metavar="N",
                   help="Attempts between progress events (single-process search only).")

    p.add_argument("--progress-jsonl", default=None, metavar="PATH",
                   help="Append progress/solution/done events as JSON lines to PATH.")

    p.add_argument("--quiet", action="store_true",
                   help="Only print solutions.")

    return p


def resolve_config(args):
    """Returns (name, chain, side) from the CLI arguments; raises ChainConfigError."""
    if args.chain is not None:
        chain = parse_chain(args.chain)
        side = args.side if args.side is not None else side_for_chain(chain)
        return "inline", validate_chain(chain, side), side
    if not os.path.exists(args.chain_file):
        raise ChainConfigError(f"chain file not found: {args.chain_file}")
    name, chain, side = load_chain_file(args.chain_file)
    if args.side is not None and args.side != side:
        side = args.side
        chain = validate_chain(chain, side)
    return name, chain, side


# ---------- driver ----------
def main(argv: Optional[List[str]] = None) -> int:
    p = build_argparser()
    args = p.parse_args(argv)

    try:
        name, chain, side = resolve_config(args)
    except ChainConfigError as e:
        sys.stderr.write(f"{e}\n")
        return 2

    emit = make_emit_progress(args.progress_jsonl, args.quiet)
    if not args.quiet:
        print(f"[chain] {name}: {len(chain) + 1} cubes into a {side}x{side}x{side} cube", flush=True)

    limit = None if args.all else max(1, int(args.max_results))
    t0 = time.monotonic()
    solutions = solve_with_policy(chain, side, fan_out=args.fan_out, processes=args.processes,
                                  limit=limit, progress=emit, progress_every=args.progress_every)

    found = 0
    for found, sol in enumerate(solutions, 1):
        print(format_solution(sol, found), flush=True)
        emit({"event": "solution", "n": found, **sol.as_dict()})

    status = "solved" if found else "exhausted"
    elapsed = time.monotonic() - t0
    emit({"event": "done", "status": status, "solutions": found, "seconds": round(elapsed, 3)})
    if not found:
        print("No solution.", flush=True)
    elif not args.quiet:
        print(f"[solve] {found} solution(s) in {elapsed:.2f}s", flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
