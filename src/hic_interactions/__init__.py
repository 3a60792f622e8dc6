"""Probe-level Hi-C interaction calling.

Core idea: count read pairs between user-defined probes, score each pair
against a binomial background (cis and trans separately), correct for the
size of the pairwise search space and filter interactively.
"""

from .contacts import ContactSource, PairedContacts, load_contact_pairs
from .interactions import InteractionProbePair
from .matrix import HeatmapMatrix
from .probes import Probe, ProbeList, load_probes_bed
from .reporting import interaction_report

__all__ = [
    "ContactSource",
    "PairedContacts",
    "load_contact_pairs",
    "InteractionProbePair",
    "HeatmapMatrix",
    "Probe",
    "ProbeList",
    "load_probes_bed",
    "interaction_report",
]
