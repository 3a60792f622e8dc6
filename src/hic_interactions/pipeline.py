from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .contacts import PairedContacts, load_cooler_pixels
from .counter import MAX_INTERACTIONS
from .matrix import HeatmapMatrix
from .probes import load_probes_bed
from .reporting import ensure_dir, interaction_report, probe_list_table, write_json, write_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutputs:
    out_dir: Path
    report_path: Path
    hits_path: Path
    meta_path: Path
    n_interactions: int


def run_pipeline(
    *,
    pairs: str | Path,
    probes: str | Path,
    out_dir: str | Path,
    chrom: str | None = None,
    min_distance: int = 0,
    max_distance: int = 0,
    min_strength: float = 0.0,
    max_significance: float = 1.0,
    min_absolute: int = 0,
    correct_linkage: bool = False,
    max_interactions: int = MAX_INTERACTIONS,
) -> PipelineOutputs:
    out_dir = ensure_dir(out_dir)

    pairs = Path(pairs)
    if pairs.suffix.lower() == ".cool":
        source = PairedContacts(load_cooler_pixels(pairs, chrom=chrom))
    else:
        source = PairedContacts.from_pairs_file(pairs)

    probe_list = load_probes_bed(probes)

    matrix = HeatmapMatrix(
        source,
        [probe_list],
        min_distance=int(min_distance),
        max_distance=int(max_distance),
        min_strength=float(min_strength),
        max_significance=float(max_significance),
        min_absolute=int(min_absolute),
        correct_linkage=bool(correct_linkage),
        max_interactions=int(max_interactions),
    )
    interactions = matrix.run()
    if interactions is None:
        raise RuntimeError("Interaction build was cancelled")

    filtered = matrix.filtered_interactions()

    report_path = write_report(interaction_report(filtered), out_dir / "interactions.tsv")
    hits = matrix.probe_list_from_current_interactions()
    hits_path = write_report(probe_list_table(hits), out_dir / "hit_probes.tsv")
    meta_path = out_dir / "meta.json"

    meta = {
        "pairs": str(pairs),
        "probes": str(probes),
        "chrom": chrom,
        "n_probes": int(matrix.probe_count),
        "n_interactions": int(len(filtered)),
        "max_obs_exp": float(matrix.max_value()),
        "min_distance": int(min_distance),
        "max_distance": int(max_distance),
        "min_strength": float(min_strength),
        "max_significance": float(max_significance),
        "min_absolute": int(min_absolute),
        "correct_linkage": bool(correct_linkage),
    }
    write_json(meta, meta_path)

    logger.info("Wrote %d interactions to %s", len(filtered), report_path)

    return PipelineOutputs(
        out_dir=Path(out_dir),
        report_path=report_path,
        hits_path=hits_path,
        meta_path=meta_path,
        n_interactions=len(filtered),
    )
