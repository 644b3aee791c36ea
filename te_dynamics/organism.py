"""Diploid individual: two pairs of homologous chromosomes.

Layout (two independent linkage groups):
  pair A = chromosomes 0, 1
  pair B = chromosomes 2, 3

Core responsibilities:
  - Initialization at an expected TE load
  - Meiosis: Poisson number of crossing-overs per pair, then one
    chromosome per pair drawn into the gamete
  - Fecundation of two gametes into a new individual
  - Loss and (regulated) transposition, with post-condition checks
  - Fitness 1 - m * n^t and zygote viability
  - Per-locus occupancy (0, 1 or 2 copies of a TE)

References:
  - Charlesworth & Charlesworth (1983), eqs. for w(n) = 1 - s n^t
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from te_dynamics.errors import ConfigurationError, LoadMismatchError, SaturationError
from te_dynamics.genome import Genome
from te_dynamics.rng import RandomSource
from te_dynamics.types import (
    N_CHROMOSOMES,
    N_LINKAGE_GROUPS,
    PLOIDY,
    LocusIndex,
    SelectionParams,
)

logger = logging.getLogger(__name__)

# One chromosome per linkage group; transient, consumed by fecundation.
Gamete = Tuple[Genome, Genome]


# ═══════════════════════════════════════════════════════════════════════
# RECOMBINATION
# ═══════════════════════════════════════════════════════════════════════

def recombine(
    rng: RandomSource,
    total_map_dist: float,
    chr_a: Genome,
    chr_b: Genome,
) -> int:
    """Crossing-over between two homologues, in place.

    The number of crossovers is Poisson(total_map_dist). Each crossover
    draws a locus uniformly in [0, n_sites) and swaps the suffix
    [locus, n_sites) between the two chromosomes. Crossovers are applied in
    draw order on the current contents, so they compound.

    Args:
        rng: Random source.
        total_map_dist: Expected number of crossovers per meiosis.
        chr_a: First homologue (modified in place).
        chr_b: Second homologue (modified in place).

    Returns:
        Number of crossovers performed.
    """
    n_crossovers = rng.poisson(total_map_dist)
    n_sites = chr_a.n_sites
    for _ in range(n_crossovers):
        locus = rng.uniform_int(n_sites)
        tail = chr_a.sites[locus:].copy()
        chr_a.sites[locus:] = chr_b.sites[locus:]
        chr_b.sites[locus:] = tail
        logger.debug("crossing-over at locus %d", locus + 1)
    return n_crossovers


# ═══════════════════════════════════════════════════════════════════════
# ORGANISM
# ═══════════════════════════════════════════════════════════════════════

class Organism:
    """One diploid individual holding four chromosomes.

    Args:
        n_sites_per_chr: Sites per chromosome.
        selection: Zygote selection settings (disabled by default).
        genomes: Optional four chromosomes to adopt (not copied). Empty
            chromosomes are created when omitted.

    Raises:
        ConfigurationError: Not exactly four chromosomes, or chromosomes of
            different lengths.
    """

    __slots__ = ('genomes', 'selection')

    def __init__(
        self,
        n_sites_per_chr: int,
        selection: Optional[SelectionParams] = None,
        genomes: Optional[Sequence[Genome]] = None,
    ):
        self.selection = selection if selection is not None else SelectionParams()
        if genomes is None:
            self.genomes: List[Genome] = [
                Genome(n_sites_per_chr) for _ in range(N_CHROMOSOMES)
            ]
        else:
            self.set_chromosomes(genomes, n_sites_per_chr)

    # ── construction helpers ─────────────────────────────────────────

    def set_chromosomes(
        self,
        genomes: Sequence[Genome],
        n_sites_per_chr: Optional[int] = None,
    ) -> None:
        """Replace the four chromosomes after checking the architecture."""
        if len(genomes) != N_CHROMOSOMES:
            raise ConfigurationError(
                f"an individual needs {N_CHROMOSOMES} chromosomes, got {len(genomes)}"
            )
        expected = genomes[0].n_sites if n_sites_per_chr is None else n_sites_per_chr
        if any(g.n_sites != expected for g in genomes):
            raise ConfigurationError(
                "all chromosomes of an individual must have "
                f"{expected} sites, got {[g.n_sites for g in genomes]}"
            )
        self.genomes = list(genomes)

    @classmethod
    def fecundation(
        cls,
        gamete1: Gamete,
        gamete2: Gamete,
        selection: Optional[SelectionParams] = None,
    ) -> 'Organism':
        """Union of two gametes.

        Pair A receives the linkage-group-A chromosome of each gamete,
        pair B the linkage-group-B ones: [g1[0], g2[0], g1[1], g2[1]].
        """
        genomes = [gamete1[0], gamete2[0], gamete1[1], gamete2[1]]
        return cls(gamete1[0].n_sites, selection=selection, genomes=genomes)

    def copy(self) -> 'Organism':
        return Organism(
            self.n_sites_per_chr,
            selection=self.selection,
            genomes=[g.copy() for g in self.genomes],
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Organism):
            return NotImplemented
        return self.selection == other.selection and self.genomes == other.genomes

    # ── architecture ─────────────────────────────────────────────────

    @property
    def n_sites_per_chr(self) -> int:
        return self.genomes[0].n_sites

    @property
    def n_chromosomes(self) -> int:
        return len(self.genomes)

    @property
    def n_sites(self) -> int:
        """Total number of sites over the four chromosomes (TE capacity)."""
        return sum(g.n_sites for g in self.genomes)

    @property
    def n_loci(self) -> int:
        """Number of diploid loci (sites counted once per homologous pair)."""
        return self.n_sites // PLOIDY

    def chromosome(self, idx: int) -> Genome:
        return self.genomes[idx]

    def pair(self, pair: int) -> Tuple[Genome, Genome]:
        return self.genomes[PLOIDY * pair], self.genomes[PLOIDY * pair + 1]

    def locus_index(self, locus: int) -> LocusIndex:
        """Split a flattened locus (pair-major) into (pair, offset)."""
        if not 0 <= locus < self.n_loci:
            raise IndexError(f"locus {locus} out of range [0, {self.n_loci})")
        pair, offset = divmod(locus, self.n_sites_per_chr)
        return LocusIndex(pair, offset)

    def flat_locus(self, index: LocusIndex) -> int:
        return index.pair * self.n_sites_per_chr + index.offset

    def load(self) -> int:
        """Total number of TEs carried by the individual."""
        return sum(g.load() for g in self.genomes)

    # ── initialization ───────────────────────────────────────────────

    def initialize(self, rng: RandomSource, expected_load: float) -> None:
        """Seed TEs so that the expected total load is ``expected_load``.

        Every site of the four chromosomes is occupied independently with
        p = expected_load / (4 * n_sites_per_chr).
        """
        p = expected_load / float(self.n_sites)
        for g in self.genomes:
            g.initialize(rng, p)

    # ── meiosis ──────────────────────────────────────────────────────

    def recombine(self, rng: RandomSource, total_map_dist: float, pair: int) -> int:
        """Crossing-over between the two homologues of ``pair``, in place."""
        chr_a, chr_b = self.pair(pair)
        return recombine(rng, total_map_dist, chr_a, chr_b)

    def get_gamete(self, rng: RandomSource, total_map_dist: float) -> Gamete:
        """Produce one gamete (copies of one chromosome per linkage group).

        Each pair is recombined in place, then one of its two homologues
        is drawn uniformly.
        """
        chosen = []
        for pair in range(N_LINKAGE_GROUPS):
            self.recombine(rng, total_map_dist, pair)
            chosen.append(self.genomes[PLOIDY * pair + rng.uniform_int(PLOIDY)].copy())
        return chosen[0], chosen[1]

    # ── TE events ────────────────────────────────────────────────────

    def loss(self, rng: RandomSource, prob_loss: float) -> int:
        """Excise TEs: Poisson(prob_loss * n) events, one chromosome each.

        Each event picks a chromosome uniformly among those still carrying
        at least one TE. The event count cannot exceed the current load.

        Returns:
            Number of TEs lost.

        Raises:
            LoadMismatchError: Load after the events is not n - nb_loss.
        """
        n_tes = self.load()
        if n_tes == 0:
            return 0
        nb_loss = rng.poisson(prob_loss * n_tes)
        if nb_loss > n_tes:
            logger.debug("loss draw %d capped at load %d", nb_loss, n_tes)
            nb_loss = n_tes
        for _ in range(nb_loss):
            eligible = [g for g in self.genomes if g.load() > 0]
            eligible[rng.uniform_int(len(eligible))].loss(rng)
        if nb_loss > 0:
            logger.debug("nb of losses: %d", nb_loss)
        observed = self.load()
        if observed != n_tes - nb_loss:
            raise LoadMismatchError('loss', observed, n_tes - nb_loss)
        return nb_loss

    def transposition(self, rng: RandomSource, prob_transp0: float, k: float) -> int:
        """Duplicate TEs: Poisson(u(n) * n) events, one chromosome each.

        The transposition rate is regulated by the load:
        u(n) = prob_transp0 / (1 + k * n), or prob_transp0 when k == 0.
        Each event picks a chromosome uniformly among those not yet full.

        Returns:
            Number of new TEs.

        Raises:
            SaturationError: The events would occupy every site.
            LoadMismatchError: Load after the events is not n + nb_transp.
        """
        n_tes = self.load()
        if n_tes == 0:
            return 0
        if k == 0:
            prob_transp = prob_transp0
        else:
            prob_transp = prob_transp0 / (1.0 + k * n_tes)
        nb_transp = rng.poisson(prob_transp * n_tes)
        capacity = self.n_sites
        if n_tes + nb_transp >= capacity:
            raise SaturationError(
                f"too many TEs and no more empty sites ({n_tes}+{nb_transp} "
                f">= {capacity})"
            )
        for _ in range(nb_transp):
            eligible = [g for g in self.genomes if g.load() < g.n_sites]
            eligible[rng.uniform_int(len(eligible))].transposition(rng)
        if nb_transp > 0:
            logger.debug("nb of transpositions: %d", nb_transp)
        observed = self.load()
        if observed != n_tes + nb_transp:
            raise LoadMismatchError('transposition', observed, n_tes + nb_transp)
        return nb_transp

    # ── selection ────────────────────────────────────────────────────

    def fitness(self) -> float:
        """1 - m * n^t. Not clamped: very large loads give negative values."""
        sel = self.selection
        return 1.0 - sel.sel_mult * float(self.load()) ** sel.sel_exp

    def is_viable(self, rng: RandomSource) -> bool:
        """Zygote survives selection (always, when selection is off)."""
        if not self.selection.zygote_selection:
            return True
        return rng.uniform() <= self.fitness()

    # ── per-locus occupancy ──────────────────────────────────────────

    def occupancy_per_locus(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Number of homologous copies (0, 1, 2) carrying a TE, per locus.

        Loci are flattened pair-major: pair A sites first, then pair B.

        Args:
            out: Optional (n_loci,) integer array to accumulate into.

        Returns:
            (n_loci,) array (``out`` itself when given).
        """
        occ = np.concatenate([
            self.genomes[PLOIDY * p].sites + self.genomes[PLOIDY * p + 1].sites
            for p in range(N_LINKAGE_GROUPS)
        ]).astype(np.int64)
        if out is None:
            return occ
        if out.shape != occ.shape:
            raise ConfigurationError(
                f"occupancy buffer has shape {out.shape}, expected {occ.shape}"
            )
        out += occ
        return out

    def n_tes_at_locus(self, locus: Union[int, LocusIndex]) -> int:
        """Copies (0, 1, 2) carrying a TE at a flattened or typed locus."""
        if not isinstance(locus, LocusIndex):
            locus = self.locus_index(locus)
        first, second = locus.chromosomes()
        return (int(self.genomes[first].has_te(locus.offset))
                + int(self.genomes[second].has_te(locus.offset)))

    def format_chromosomes(self) -> str:
        lines = [f"chromosomes ({self.n_chromosomes // PLOIDY} pairs):"]
        lines.extend(str(g) for g in self.genomes)
        return '\n'.join(lines)
