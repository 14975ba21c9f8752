from crashfair.cli import main
from crashfair.seeds import sha256_hex


def _fields(text: str) -> dict:
    out = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            out[key.strip()] = value.strip()
    return out


def test_commit(capsys) -> None:
    assert main(["commit"]) == 0
    fields = _fields(capsys.readouterr().out)
    assert len(fields["commitment"]) == 64
    assert len(fields["seed"]) == 64


def test_commit_uses_environment_config(capsys, monkeypatch) -> None:
    monkeypatch.setenv("CRASHFAIR_SEED_BYTES", "48")
    assert main(["commit"]) == 0
    fields = _fields(capsys.readouterr().out)
    assert len(fields["seed"]) == 96
    assert fields["commitment"] == sha256_hex(fields["seed"])


def test_round_then_verify(capsys) -> None:
    assert main(["round", "--contribution", "alice=hello", "bob=world"]) == 0
    fields = _fields(capsys.readouterr().out)
    multiplier = fields["multiplier"].rstrip("x")

    code = main(["verify", "--seed", fields["seed"], "--commitment", fields["commitment"],
                 "--multiplier", multiplier, "--contribution", "bob=world", "alice=hello"])
    assert code == 0
    assert capsys.readouterr().out.strip() == "valid"


def test_verify_mismatch(capsys) -> None:
    main(["round", "--contribution", "hello"])
    fields = _fields(capsys.readouterr().out)
    code = main(["verify", "--seed", fields["seed"], "--commitment", "0" * 64,
                 "--multiplier", fields["multiplier"].rstrip("x"), "--contribution", "hello"])
    assert code == 1
    out = capsys.readouterr().out
    assert out.startswith("commitment_mismatch")
    assert "recomputed:" in out


def test_invalid_player_seed(capsys) -> None:
    assert main(["round", "--contribution", "p1=" + "x" * 76]) == 2
    assert "too long" in capsys.readouterr().err


def test_simulate_and_audit(capsys, tmp_path) -> None:
    out = tmp_path / "rounds.csv"
    assert main(["simulate", "--n", "50", "--seed", "1", "--out", str(out)]) == 0
    text = capsys.readouterr().out
    assert "Crash simulation (50 rounds" in text
    assert "Wrote 50 records" in text

    assert main(["audit", "--data", str(out)]) == 0
    assert "valid=50" in capsys.readouterr().out


def test_simulate_fit_and_plot(capsys, tmp_path) -> None:
    png = tmp_path / "s.png"
    assert main(["simulate", "--n", "300", "--seed", "2", "--fit", "--plot", str(png)]) == 0
    assert "Tail models" in capsys.readouterr().out
    assert png.exists()


def test_edge_override(capsys) -> None:
    assert main(["simulate", "--n", "10", "--seed", "1", "--edge", "0.05", "--max", "100"]) == 0
    assert "sha256-p13-e0.05-1-100" in capsys.readouterr().out
