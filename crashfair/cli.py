import argparse
import dataclasses
import logging
import sys

from .config import FairnessConfig
from .engine import FairnessEngine
from .errors import FairnessError
from .fair import VerificationOutcome, recompute, verify
from .seeds import commit


def _contribution(text: str):
    # PID=VALUE, or a bare VALUE credited to "player"
    pid, sep, value = text.partition("=")
    if not sep:
        return ("player", text)
    return (pid, value)


def _add_config_args(p):
    p.add_argument("--edge", type=float, default=None, help="House edge fraction (default 0.03)")
    p.add_argument("--max", dest="max_multiplier", type=float, default=None, help="Multiplier cap (default 9999)")


def _config(args) -> FairnessConfig:
    base = FairnessConfig.from_env()
    overrides = {}
    if getattr(args, "edge", None) is not None:
        overrides["house_edge"] = args.edge
    if getattr(args, "max_multiplier", None) is not None:
        overrides["max_multiplier"] = args.max_multiplier
    return dataclasses.replace(base, **overrides)


def make_parser():
    p = argparse.ArgumentParser(
        description="Provably fair crash multipliers: commit, resolve, reveal and verify rounds"
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("commit", help="Draw an operator seed and print its commitment")

    p_round = sub.add_parser("round", help="Play one round end to end")
    p_round.add_argument("--contribution", nargs="+", type=_contribution, required=True,
                         help="Player seeds as PID=VALUE (or VALUE)")
    _add_config_args(p_round)

    p_verify = sub.add_parser("verify", help="Verify a revealed round")
    p_verify.add_argument("--seed", required=True, help="Revealed operator seed")
    p_verify.add_argument("--commitment", required=True, help="Commitment hash published at round start")
    p_verify.add_argument("--multiplier", required=True, help="Published final multiplier")
    p_verify.add_argument("--contribution", nargs="+", type=_contribution, required=True,
                          help="Player seeds as PID=VALUE (or VALUE)")
    _add_config_args(p_verify)

    p_sim = sub.add_parser("simulate", help="Simulate rounds and compare with the theoretical curve")
    p_sim.add_argument("--n", type=int, default=10000)
    p_sim.add_argument("--seed", type=int, default=None, help="Reproducible run (not for production seeds)")
    p_sim.add_argument("--fit", action="store_true", help="Fit tail models to the simulated multipliers")
    p_sim.add_argument("--plot", nargs="?", const="", default=None,
                       help="Show the survival plot, or save it to the given path")
    p_sim.add_argument("--out", default=None, help="Write round records to CSV or JSON")
    _add_config_args(p_sim)

    p_audit = sub.add_parser("audit", help="Verify every revealed round in a CSV/JSON record file")
    p_audit.add_argument("--data", required=True, help="Path to CSV/JSON records")
    _add_config_args(p_audit)

    return p


def main(argv=None):
    parser = make_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return _run(args)
    except FairnessError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _run(args):
    config = _config(args)

    if args.cmd == "commit":
        seed, commitment = commit(config)
        print(f"commitment: {commitment}")
        print(f"seed:       {seed}")
        return 0

    if args.cmd == "round":
        engine = FairnessEngine(config)
        started = engine.start_round()
        print(f"round:      {started.round_id}")
        print(f"commitment: {started.commitment_hash}")
        for pid, value in args.contribution:
            engine.submit_contribution(started.round_id, pid, value)
        resolved = engine.lock_and_resolve(started.round_id)
        print(f"multiplier: {resolved.final_multiplier:.2f}x")
        revealed = engine.reveal_seed(started.round_id)
        print(f"seed:       {revealed.operator_seed}")
    elif args.cmd == "verify":
        outcome = verify(args.seed, args.contribution, args.commitment, args.multiplier, config)
        print(outcome.value)
        if outcome is not VerificationOutcome.VALID:
            _, result = recompute(args.seed, args.contribution, config)
            print(f"recomputed: digest={result.digest} multiplier={result.final_multiplier:.2f}x")
            return 1
    elif args.cmd == "simulate":
        from .report import summarize_simulation
        from .simulate import run_simulation
        result = run_simulation(args.n, config, seed=args.seed, keep_records=bool(args.out))
        print(summarize_simulation(result, config))
        fits = []
        if args.fit:
            from .fit import best_model_by_aic, fit_models
            from .report import summarize_fit
            fits = fit_models(result.multipliers)
            print()
            print(summarize_fit(fits, best_model_by_aic(fits)))
        if args.out:
            from .records import write_records
            count = write_records(args.out, result.records)
            print(f"Wrote {count} records to {args.out}.")
        if args.plot is not None:
            from .plotting import plot_survival
            from .survival import empirical_survival
            plot_survival(empirical_survival(result.multipliers), fits, config, path=args.plot or None)
    elif args.cmd == "audit":
        from .records import audit_records, load_records
        table = audit_records(load_records(args.data), config)
        print(table.to_string(index=False))
        counts = table["outcome"].value_counts()
        print()
        print(", ".join(f"{k}={v}" for k, v in counts.items()))
        bad = (table["outcome"] != "valid") & (table["outcome"] != "unrevealed")
        return 1 if bad.any() else 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
