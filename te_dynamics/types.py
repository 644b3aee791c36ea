"""Core data types for te_dynamics.

Single source of truth for:
  - Chromosome architecture constants (2 linkage groups, 4 chromosomes)
  - SimulationState enumeration (replicate state machine)
  - LocusIndex: typed (pair, offset) locus addressing
  - SelectionParams: zygote-selection settings shared by all organisms
  - Output column names of the persisted TSV file
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple


# ═══════════════════════════════════════════════════════════════════════
# CHROMOSOME ARCHITECTURE
# ═══════════════════════════════════════════════════════════════════════

N_LINKAGE_GROUPS = 2                          # pair A, pair B
PLOIDY = 2                                    # diploids
N_CHROMOSOMES = N_LINKAGE_GROUPS * PLOIDY     # g0,g1 | g2,g3


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class SimulationState(IntEnum):
    """Replicate life cycle.

    INITIALIZED → RUNNING → COMPLETED      (all generations simulated)
                          → EXTINCT_EARLY  (population TE load hit 0)
                          → ABORTED        (fatal invariant violation)
    """
    INITIALIZED   = 0
    RUNNING       = 1
    COMPLETED     = 2
    EXTINCT_EARLY = 3
    ABORTED       = 4


# ═══════════════════════════════════════════════════════════════════════
# LOCUS ADDRESSING
# ═══════════════════════════════════════════════════════════════════════

class LocusIndex(NamedTuple):
    """A site considered jointly across both homologues of one pair.

    pair:   linkage group (0 = chromosomes g0/g1, 1 = g2/g3)
    offset: site position inside the chromosomes of that pair
    """
    pair: int
    offset: int

    def chromosomes(self):
        """Indices of the two homologous chromosomes holding this locus."""
        return (PLOIDY * self.pair, PLOIDY * self.pair + 1)


# ═══════════════════════════════════════════════════════════════════════
# SELECTION
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SelectionParams:
    """Zygote selection against TE load (Charlesworth & Charlesworth 1983).

    fitness(n) = 1 - sel_mult * n ** sel_exp, evaluated only when
    ``zygote_selection`` is True.
    """
    zygote_selection: bool = False
    sel_mult: float = 0.001     # "s" in C&C 1983
    sel_exp: float = 1.5        # "t" in C&C 1983


# ═══════════════════════════════════════════════════════════════════════
# OUTPUT SCHEMA
# ═══════════════════════════════════════════════════════════════════════

# nL/meanL/varL/sdL (locus-frequency summaries) are declared in the header
# but no statistic is computed for them; rows stop after 'empty'.
OUTPUT_COLUMNS = (
    'simu', 'gen',
    'nC', 'meanC', 'varC', 'sdC',
    'minC', 'q25C', 'medC', 'q75C', 'maxC',
    'empty',
    'nL', 'meanL', 'varL', 'sdL',
)
N_WRITTEN_COLUMNS = 12
