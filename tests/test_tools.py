from pathlib import Path

from game.sim.determinism import set_sim_seed
from main import main as run_main, run
from tools.determinism_guard import DEFAULT_SCAN_DIRS, scan_paths, scan_source

SAMPLE = Path("sample.py")


def kinds(src):
    return [f["kind"] for f in scan_source(src, SAMPLE)]


def test_guard_flags_wall_clock_and_global_rng():
    src = "\n".join(
        [
            "import time, random, datetime, uuid",
            "a = time.time()",
            "b = random.randint(1, 3)",
            "c = datetime.datetime.now()",
            "d = random.Random()",
            "e = uuid.uuid4()",
            "f = hash('x')",
        ]
    )
    assert kinds(src) == ["wall_clock_time", "global_rng", "wall_clock_time", "global_rng", "entropy", "unstable_hash"]


def test_guard_allows_seeded_streams():
    src = "\n".join(
        [
            "import random",
            "rng = random.Random(42)",
            "x = rng.random()",
            "y = self.rng.randint(1, 2)",
        ]
    )
    assert kinds(src) == []


def test_guard_reports_syntax_errors():
    assert kinds("def broken(:\n") == ["parse_error"]


def test_procurement_code_passes_the_guard():
    assert scan_paths(DEFAULT_SCAN_DIRS) == []


def test_headless_runner_smoke(tmp_path, capsys):
    save = tmp_path / "state.json"
    assert run_main(["--days", "6", "--consumers", "4", "--seed", "3", "--save", str(save), "--qa"]) == 0
    assert save.exists()
    assert run_main(["--days", "2", "--consumers", "4", "--seed", "3", "--save", str(save), "--resume"]) == 0
    out = capsys.readouterr().out
    assert "QA PASS" in out
    assert "Saved to" in out


def test_runner_profiles_follow_the_seed_argument():
    set_sim_seed(11)
    _, _, first = run(0, 5, 3)
    set_sim_seed(999)
    _, _, second = run(0, 5, 3)
    assert first.profiles == second.profiles
    assert sorted(first.profiles) == [1, 2, 3, 4, 5]
