import csv
import json

from koipond.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def _small_preset(tmp_path):
    config_path = tmp_path / "small.yaml"
    config_path.write_text(
        "flock:\n"
        "  count: 12\n"
        "bounds:\n"
        "  width: 400\n"
        "  height: 300\n"
        "walker:\n"
        "  enabled: true\n"
        "  mode: patrol\n"
        "  speed: 100\n"
        "  waypoints:\n"
        "    - {x: 60, y: 20}\n"
        "    - {x: 60, y: 80}\n"
    )
    return config_path


def test_headless_log_header_and_rows(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=3, seed=1, log_path=log_path, deterministic_log=True, config_path=_small_preset(tmp_path))
    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "tick",
        "agents",
        "avg_speed",
        "max_speed",
        "avg_force",
        "neighbor_checks",
        "waypoints",
        "arrivals",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["0", "1", "2"]
    assert all(row[1] == "12" for row in rows[1:])
    assert all(row[6] == "2" for row in rows[1:])
    assert all(row[-1] == "0.000" for row in rows[1:])


def test_headless_deterministic_logs_match(tmp_path):
    config_path = _small_preset(tmp_path)
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    run_headless(steps=20, seed=3, log_path=first, deterministic_log=True, config_path=config_path)
    run_headless(steps=20, seed=3, log_path=second, deterministic_log=True, config_path=config_path)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    world = run_headless(
        steps=90,
        seed=3,
        log_path=None,
        deterministic_log=True,
        config_path=_small_preset(tmp_path),
        summary_path=summary_path,
        summary_window=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 90
    assert payload["seed"] == 3
    assert payload["agents"] == 12
    assert payload["deterministic_log"] is True
    assert payload["tick_ms"]["max"] == 0.0
    assert "avg_speed" in payload
    assert "neighbor_checks" in payload
    assert payload["tail_window"]["window"] == 2
    assert payload["walker"] == {"mode": "patrol", "arrivals": world.walker.arrivals, "waypoints": 2}
    assert world.walker.arrivals >= 1
