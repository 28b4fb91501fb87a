import orjson
import pytest
from typer.testing import CliRunner

from citylookup import cli
from citylookup import errors
from citylookup import loader
from citylookup import models
from citylookup import pipeline


COUNTRIES = [
    {"id": 1, "iso2": "us", "name": "United States", "currency": "USD"},
    {"id": 2, "iso2": "CA", "name": "Canada"},
    {"id": 3, "iso2": "AQ", "name": "Antarctica"},
]
STATES = [
    {
        "id": 10,
        "country_id": 1,
        "name": "California",
        "cities": [
            {
                "id": 100,
                "name": "Los Angeles",
                "latitude": "34.05",
                "longitude": "-118.24",
            },
            {
                "id": 101,
                "name": "San Francisco",
                "latitude": "37.77",
                "longitude": "-122.42",
            },
        ],
    },
    {"id": 20, "country_id": 2, "name": "Ontario", "cities": []},
    {
        "id": 50,
        "country_id": 999,
        "name": "Atlantis",
        "cities": [{"id": 500, "name": "Poseidonis", "latitude": 0, "longitude": 0}],
    },
]


@pytest.fixture
def raw_dir(tmp_path):
    ret = tmp_path / "raw"
    ret.mkdir()
    (ret / loader.COUNTRIES_FILE).write_bytes(orjson.dumps(COUNTRIES))
    (ret / loader.STATES_FILE).write_bytes(orjson.dumps(STATES))
    return ret


def read_artifacts(out_dir):
    return {p.name: p.read_bytes() for p in sorted(out_dir.iterdir())}


def test_run(raw_dir, tmp_path):
    out_dir = tmp_path / "generated" / "per-country"
    summary = pipeline.run(raw_dir, out_dir)
    assert summary.countries_written == 3
    assert summary.orphaned_states == 1
    assert summary.orphaned_cities == 1
    assert summary.failures == []
    assert summary.exit_code == 0
    artifacts = read_artifacts(out_dir)
    assert list(artifacts) == ["1_US.json", "2_CA.json", "3_AQ.json"]
    us = orjson.loads(artifacts["1_US.json"])
    assert us == {
        "id": 1,
        "iso2": "us",
        "name": "United States",
        "currency": "USD",
        "states": [
            {
                "id": 10,
                "name": "California",
                "cities": [
                    {
                        "id": 100,
                        "name": "Los Angeles",
                        "latitude": 34.05,
                        "longitude": -118.24,
                    },
                    {
                        "id": 101,
                        "name": "San Francisco",
                        "latitude": 37.77,
                        "longitude": -122.42,
                    },
                ],
            }
        ],
    }
    canada = orjson.loads(artifacts["2_CA.json"])
    assert canada["states"] == [{"id": 20, "name": "Ontario", "cities": []}]
    assert orjson.loads(artifacts["3_AQ.json"])["states"] == []
    # orphans appear nowhere
    for data in artifacts.values():
        assert b"Atlantis" not in data
        assert b"Poseidonis" not in data


def test_run_idempotent(raw_dir, tmp_path):
    pipeline.run(raw_dir, tmp_path / "first")
    pipeline.run(raw_dir, tmp_path / "second")
    pipeline.run(raw_dir, tmp_path / "second")
    assert read_artifacts(tmp_path / "first") == read_artifacts(tmp_path / "second")


def test_run_sorted(raw_dir, tmp_path):
    pipeline.run(raw_dir, tmp_path / "out", order=models.SortOrder.NAME)
    us = orjson.loads((tmp_path / "out" / "1_US.json").read_bytes())
    assert [c["name"] for c in us["states"][0]["cities"]] == [
        "Los Angeles",
        "San Francisco",
    ]


def test_run_load_failure_writes_nothing(raw_dir, tmp_path):
    (raw_dir / loader.STATES_FILE).write_bytes(b"[{")
    out_dir = tmp_path / "out"
    with pytest.raises(errors.DecodeError):
        pipeline.run(raw_dir, out_dir)
    assert not out_dir.exists()


def test_run_output_error(raw_dir, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(errors.OutputError):
        pipeline.run(raw_dir, blocker / "out")


def test_run_partial_failure(raw_dir, tmp_path):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    (out_dir / "2_CA.json").mkdir()
    summary = pipeline.run(raw_dir, out_dir)
    assert summary.countries_written == 2
    assert [f.artifact for f in summary.failures] == ["2_CA"]
    assert summary.exit_code == 2
    assert str(summary).endswith("1 failed: 2_CA")


def test_cli(raw_dir, tmp_path):
    runner = CliRunner()
    out_dir = tmp_path / "out"
    result = runner.invoke(
        cli.app, ["--raw-dir", str(raw_dir), "--out-dir", str(out_dir)]
    )
    assert result.exit_code == 0, result.output
    assert "3 countries written, 1 orphaned states, 1 orphaned cities" in result.output
    assert (out_dir / "1_US.json").exists()


def test_cli_load_failure(raw_dir, tmp_path):
    (raw_dir / loader.COUNTRIES_FILE).write_bytes(orjson.dumps([{"id": 1}]))
    result = CliRunner().invoke(
        cli.app, ["--raw-dir", str(raw_dir), "--out-dir", str(tmp_path / "out")]
    )
    assert result.exit_code == 1


def test_cli_missing_input(tmp_path):
    result = CliRunner().invoke(
        cli.app, ["--raw-dir", str(tmp_path), "--out-dir", str(tmp_path / "out")]
    )
    assert result.exit_code == 1


def test_cli_partial_failure(raw_dir, tmp_path):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    (out_dir / "1_US.json").mkdir()
    result = CliRunner().invoke(
        cli.app, ["--raw-dir", str(raw_dir), "--out-dir", str(out_dir)]
    )
    assert result.exit_code == 2


def test_env_int(monkeypatch):
    monkeypatch.delenv("CITYLOOKUP_TEST_SIZE", raising=False)
    assert pipeline.env_int("CITYLOOKUP_TEST_SIZE", 42) == 42
    monkeypatch.setenv("CITYLOOKUP_TEST_SIZE", "1024")
    assert pipeline.env_int("CITYLOOKUP_TEST_SIZE", 42) == 1024
    monkeypatch.setenv("CITYLOOKUP_TEST_SIZE", "100MB")
    assert pipeline.env_int("CITYLOOKUP_TEST_SIZE", 42) == 42
