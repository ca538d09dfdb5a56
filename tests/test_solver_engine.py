import itertools

import pytest

from snakecube.chains import ChainConfigError, parse_chain, reference_chain
from snakecube.geometry import Move, Segment, dot, move_vector
from snakecube.solver_engine import Grid, SolverEngine, first_solution, solve

MINI = "STTTTTT"        # 8 cubes, 2x2x2
MINI_ALL_TURNS = "TTTTTTT"

# First solution of the 64-cube puzzle in canonical order: root (0,0,0), +x.
REFERENCE_TRACE = (
    "Forward Forward Right Backward Backward Up Left Forward Forward Forward Down Right Right "
    "Backward Up Up Backward Down Down Backward Right Forward Up Forward Down Forward Up Left "
    "Left Backward Backward Up Backward Right Down Right Up Up Left Left Left Down Forward Up "
    "Right Right Right Down Forward Forward Left Up Left Down Backward Left Forward Up "
    "Backward Right Right Right Forward"
).split()


def assert_valid_folding(sol, chain, side):
    chain = parse_chain(chain)
    pts = sol.positions()
    # well-formed
    assert len(pts) == len(chain) + 1
    assert len(set(pts)) == len(pts)
    assert all(0 <= c < side for p in pts for c in p)
    # adjacency
    for a, b, mv in zip(pts, pts[1:], sol.moves):
        d = move_vector(mv)
        assert b == (a[0] + d[0], a[1] + d[1], a[2] + d[2])
    # segment compliance, first edge measured against the root direction
    dirs = sol.directions()
    for seg, prev, nxt in zip(chain, dirs, dirs[1:]):
        if seg is Segment.STRAIGHT:
            assert nxt == prev
        else:
            assert dot(prev, nxt) == 0


def test_grid_occupy_release_and_invariants():
    g = Grid(2)
    assert g.is_empty()
    g.occupy((1,0,1))
    assert not g.is_free((1,0,1))
    assert g.occupied_cells() == [(1,0,1)]
    with pytest.raises(RuntimeError):
        g.occupy((1,0,1))
    g.release((1,0,1))
    with pytest.raises(RuntimeError):
        g.release((1,0,1))
    with g.holding((0,0,0)):
        assert len(g) == 1
    assert g.is_empty()

def test_grid_copy_is_independent():
    g = Grid(3)
    g.occupy((0,1,2))
    c = g.copy()
    c.occupy((2,2,2))
    assert len(g) == 1 and len(c) == 2

def test_roots_row_major_then_canonical_directions():
    eng = SolverEngine(MINI, 2)
    roots = eng.roots()
    assert len(roots) == 8 * 6
    assert roots[0] == ((0,0,0), (1,0,0))
    assert roots[5] == ((0,0,0), (0,0,-1))
    assert roots[6] == ((0,0,1), (1,0,0))
    assert roots[-1] == ((1,1,1), (0,0,-1))

def test_mini_cube_count_and_validity():
    sols = list(solve(MINI, 2))
    # every directed Hamiltonian path of the 2x2x2 cube graph, root direction fixed by the first edge
    assert len(sols) == 144
    for s in sols:
        assert_valid_folding(s, MINI, 2)
    assert len({(s.start, s.moves) for s in sols}) == 144

def test_mini_cube_all_turns_count():
    # a Turn first joint leaves 4 root directions per path
    sols = list(solve(MINI_ALL_TURNS, 2))
    assert len(sols) == 576
    for s in sols[:50]:
        assert_valid_folding(s, MINI_ALL_TURNS, 2)

def test_mini_cube_first_solution():
    sol = first_solution(MINI, 2)
    assert sol.start == (0,0,0)
    assert sol.direction == (1,0,0)
    assert sol.labels() == ["Forward", "Right", "Backward", "Up", "Forward", "Left", "Backward"]

def test_solve_is_deterministic():
    a = [(s.start, s.direction, s.moves) for s in solve(MINI, 2)]
    b = [(s.start, s.direction, s.moves) for s in solve(MINI, 2)]
    assert a == b

def test_grid_restored_after_full_search():
    eng = SolverEngine(MINI, 2)
    n = sum(1 for _ in eng.solve())
    assert n == 144
    assert eng.grid is not None and eng.grid.is_empty()
    assert eng.path == []
    assert eng.solutions_found == 144

def test_grid_restored_after_early_stop():
    eng = SolverEngine(MINI, 2)
    gen = eng.solve()
    taken = list(itertools.islice(gen, 5))
    assert len(taken) == 5
    assert eng.placed_count() == 8          # suspended on a complete folding
    gen.close()
    assert eng.grid.is_empty()

def test_limit_caps_and_zero_limit_yields_nothing():
    eng = SolverEngine(MINI, 2)
    assert len(list(eng.solve(limit=3))) == 3
    assert eng.grid.is_empty()
    assert list(SolverEngine(MINI, 2).solve(limit=0)) == []

def test_limited_prefix_matches_full_sequence():
    full = list(solve(MINI, 2))
    assert list(solve(MINI, 2, limit=10)) == full[:10]

def test_no_solution_is_empty_not_error():
    assert list(solve("SSSSSSS", 2)) == []
    assert list(solve("STTSTTS", 2)) == []
    assert first_solution("SSSSSSS", 2) is None
    straight_27 = "S" * 26
    assert list(solve(straight_27, 3)) == []

def test_configuration_errors_fail_before_search():
    with pytest.raises(ChainConfigError):
        SolverEngine("STTTTT", 2)
    with pytest.raises(ChainConfigError):
        solve(reference_chain(), 3)
    with pytest.raises(ChainConfigError):
        SolverEngine("STTQTTT", 2)

def test_search_root_validates_root():
    eng = SolverEngine(MINI, 2)
    with pytest.raises(ChainConfigError):
        next(eng.search_root((2,0,0), (1,0,0)))
    with pytest.raises(ChainConfigError):
        next(eng.search_root((0,0,0), (1,1,0)))

def test_search_root_with_illegal_prefix_restores_grid():
    eng = SolverEngine(MINI, 2)
    # first joint is Straight, so the first move must follow the root direction
    with pytest.raises(ChainConfigError):
        next(eng.search_root((0,0,0), (1,0,0), prefix=[Move.RIGHT]))
    assert eng.grid.is_empty()
    with pytest.raises(ChainConfigError):
        next(eng.search_root((0,0,0), (1,0,0), prefix=[Move.FORWARD, Move.LEFT]))
    assert eng.grid.is_empty()

def test_search_root_prefix_filters_subtree():
    eng = SolverEngine(MINI, 2)
    all_root = list(eng.search_root((0,0,0), (1,0,0)))
    pref = [Move.FORWARD, Move.UP]
    below = list(eng.search_root((0,0,0), (1,0,0), prefix=pref))
    assert below == [s for s in all_root if list(s.moves[:2]) == pref]
    assert eng.grid.is_empty()

def test_progress_callback_payload():
    events = []
    eng = SolverEngine(MINI, 2, progress=events.append, progress_every=50)
    list(eng.solve())
    assert events
    ev = events[0]
    assert ev["event"] == "progress"
    assert ev["total"] == 8
    assert ev["roots"] == 48
    assert ev["attempts"] == 50
    assert eng.best_depth_ever == 8

def test_reference_trace_is_a_valid_folding():
    from snakecube.solver_engine import Solution
    moves = tuple(Move(m) for m in REFERENCE_TRACE)
    sol = Solution((0,0,0), (1,0,0), moves)
    assert_valid_folding(sol, reference_chain(), 4)

def test_reference_search_resumed_below_prefix_finds_recorded_trace():
    eng = SolverEngine(reference_chain(), 4)
    gen = eng.search_root((0,0,0), (1,0,0), prefix=REFERENCE_TRACE[:20])
    sol = next(gen)
    gen.close()
    assert sol.labels() == REFERENCE_TRACE
    assert eng.grid.is_empty()

@pytest.mark.slow
def test_reference_first_solution_matches_recorded_trace():
    sol = first_solution(reference_chain(), 4)
    assert sol is not None
    assert sol.start == (0,0,0)
    assert sol.direction == (1,0,0)
    assert sol.labels() == REFERENCE_TRACE
