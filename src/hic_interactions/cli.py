from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .pipeline import run_pipeline
from .synth import synth_dataset


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hic-interactions")
    p.add_argument("--verbose", action=argparse.BooleanOptionalAction, default=False)
    sub = p.add_subparsers(dest="cmd", required=True)

    ps = sub.add_parser("synth", help="Generate synthetic read pairs + bin probes with planted loops")
    ps.add_argument("--out_dir", type=str, default="data/synthetic")
    ps.add_argument("--n_bins", type=int, default=64)
    ps.add_argument("--binsize", type=int, default=10_000)
    ps.add_argument("--chroms", type=str, nargs="+", default=["chr1", "chr2"])
    ps.add_argument("--seed", type=int, default=0)

    pr = sub.add_parser("run", help="Score probe-probe interactions and write a report")
    pr.add_argument("--pairs", type=str, required=True, help="Read-pairs TSV or .cool file")
    pr.add_argument("--probes", type=str, required=True, help="Probe BED file")
    pr.add_argument("--out_dir", type=str, required=True)
    pr.add_argument("--chrom", type=str, default=None, help="Restrict a .cool file to one chromosome")
    pr.add_argument("--min_distance", type=int, default=0)
    pr.add_argument("--max_distance", type=int, default=0, help="0 means no limit (trans allowed)")
    pr.add_argument("--min_strength", type=float, default=0.0)
    pr.add_argument("--max_significance", type=float, default=1.0)
    pr.add_argument("--min_absolute", type=int, default=0)
    pr.add_argument("--correct_linkage", action=argparse.BooleanOptionalAction, default=False)

    return p


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "synth":
        paths = synth_dataset(
            out_dir=args.out_dir,
            n_bins=int(args.n_bins),
            binsize=int(args.binsize),
            chroms=tuple(args.chroms),
            seed=int(args.seed),
        )
        print("Wrote:")
        for k, v in paths.items():
            print(f"  {k}: {Path(v).as_posix()}")
        return

    if args.cmd == "run":
        out = run_pipeline(
            pairs=args.pairs,
            probes=args.probes,
            out_dir=args.out_dir,
            chrom=args.chrom,
            min_distance=int(args.min_distance),
            max_distance=int(args.max_distance),
            min_strength=float(args.min_strength),
            max_significance=float(args.max_significance),
            min_absolute=int(args.min_absolute),
            correct_linkage=bool(args.correct_linkage),
        )
        print(f"{out.n_interactions} interactions")
        print("Wrote outputs to:", out.out_dir.as_posix())
        return

    raise SystemExit(f"Unknown command: {args.cmd}")
