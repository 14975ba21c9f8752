import json

import pytest

from crashfair.engine import FairnessEngine
from crashfair.records import audit_records, load_records, write_records
from crashfair.simulate import run_simulation


@pytest.fixture(scope="module")
def records():
    return run_simulation(25, seed=5, keep_records=True).records


def _unrevealed_record():
    engine = FairnessEngine()
    started = engine.start_round()
    engine.submit_contribution(started.round_id, "p1", "abc")
    engine.lock_and_resolve(started.round_id)
    return engine.record(started.round_id)


@pytest.mark.parametrize("suffix", [".csv", ".json"])
def test_round_trip_audits_clean(records, tmp_path, suffix) -> None:
    path = str(tmp_path / f"rounds{suffix}")
    assert write_records(path, records) == 25
    loaded = load_records(path)
    assert len(loaded) == 25
    assert loaded[0]["commitment_hash"] == records[0]["commitment_hash"]
    assert loaded[0]["contributions"] == records[0]["contributions"]
    table = audit_records(loaded)
    assert (table["outcome"] == "valid").all()


def test_csv_keeps_missing_seed_empty(tmp_path) -> None:
    path = str(tmp_path / "pending.csv")
    write_records(path, [_unrevealed_record()])
    loaded = load_records(path)
    assert loaded[0]["operator_seed"] is None
    assert audit_records(loaded)["outcome"].tolist() == ["unrevealed"]


def test_tampering_detected(records) -> None:
    bad_multiplier = dict(records[0], final_multiplier=records[0]["final_multiplier"] + 1)
    seed = records[1]["operator_seed"]
    bad_seed = dict(records[1], operator_seed=("1" if seed[0] != "1" else "2") + seed[1:])
    table = audit_records([bad_multiplier, bad_seed, records[2]])
    assert table["outcome"].tolist() == ["multiplier_mismatch", "commitment_mismatch", "valid"]


def test_invalid_contributions_reported(records) -> None:
    rec = dict(records[0], contributions=[])
    assert audit_records([rec])["outcome"][0].startswith("invalid")


def test_json_records_wrapper(records, tmp_path) -> None:
    path = tmp_path / "wrapped.json"
    path.write_text(json.dumps({"records": records[:3]}), encoding="utf-8")
    assert len(load_records(str(path))) == 3


def test_unsupported_format(tmp_path) -> None:
    with pytest.raises(ValueError):
        write_records(str(tmp_path / "rounds.txt"), [])
    with pytest.raises(ValueError):
        load_records(str(tmp_path / "rounds.txt"))
