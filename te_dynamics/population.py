"""Constant-size population of diploid individuals.

Handles: initialization at an expected TE load per individual, random
mating with zygote selection (non-overlapping generations), population-wide
loss and transposition, and the summary statistics of the TE load
distribution written each generation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from te_dynamics.errors import ConfigurationError, RetryBudgetExceeded
from te_dynamics.organism import Organism
from te_dynamics.rng import RandomSource
from te_dynamics.types import N_CHROMOSOMES, SelectionParams

if TYPE_CHECKING:
    from te_dynamics.config import SimulationConfig

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# LOAD STATISTICS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class LoadSummary:
    """Distribution of the number of TEs per individual in one generation."""
    total: int = 0
    mean: float = 0.0
    var: float = 0.0          # sample variance (n - 1 denominator)
    sd: float = 0.0
    min: int = 0
    q25: float = 0.0
    median: float = 0.0
    q75: float = 0.0
    max: int = 0
    prop_empty: float = 0.0   # fraction of empty (locus, individual) pairs

    def as_row(self) -> tuple:
        """Values in output-column order (nC .. empty)."""
        return (self.total, self.mean, self.var, self.sd, self.min,
                self.q25, self.median, self.q75, self.max, self.prop_empty)


def compute_load_summary(loads: Sequence[int], prop_empty: float = 0.0) -> LoadSummary:
    """Summarize per-individual TE counts.

    Quantiles interpolate linearly between order statistics of the sorted
    loads. The standard deviation is reported as 0 when the mean load is 0.

    Args:
        loads: TE count of each individual.
        prop_empty: Proportion of empty loci, carried through unchanged.

    Returns:
        LoadSummary.
    """
    arr = np.sort(np.asarray(loads, dtype=np.float64))
    if arr.size == 0:
        return LoadSummary(prop_empty=prop_empty)
    mean = float(arr.mean())
    var = float(arr.var(ddof=1)) if arr.size > 1 else 0.0
    sd = 0.0 if mean == 0 else math.sqrt(var)
    q25, med, q75 = (float(v) for v in np.quantile(arr, [0.25, 0.5, 0.75]))
    return LoadSummary(
        total=int(arr.sum()),
        mean=mean,
        var=var,
        sd=sd,
        min=int(arr[0]),
        q25=q25,
        median=med,
        q75=q75,
        max=int(arr[-1]),
        prop_empty=prop_empty,
    )


# ═══════════════════════════════════════════════════════════════════════
# POPULATION
# ═══════════════════════════════════════════════════════════════════════

class Population:
    """Fixed-size, ordered set of individuals sharing one architecture.

    Args:
        n_diploids: Number of individuals (constant across generations).
        n_sites_per_chr: Sites per chromosome.
        exp_tes_per_ind: Expected number of TEs per individual at t=0.
        total_map_dist: Expected crossovers per pair and meiosis.
        selection: Zygote selection settings.
        max_viability_attempts: Zygotes tried per offspring slot before
            giving up (None = unbounded).
    """

    def __init__(
        self,
        n_diploids: int,
        n_sites_per_chr: int,
        exp_tes_per_ind: float,
        total_map_dist: float = 90.0,
        selection: Optional[SelectionParams] = None,
        max_viability_attempts: Optional[int] = None,
    ):
        if n_diploids < 2:
            raise ConfigurationError(f"requires at least 2 individuals, got {n_diploids}")
        self.n_diploids = n_diploids
        self.n_sites_per_chr = n_sites_per_chr
        self.exp_tes_per_ind = exp_tes_per_ind
        self.total_map_dist = total_map_dist
        self.selection = selection if selection is not None else SelectionParams()
        self.max_viability_attempts = max_viability_attempts
        self.individuals: List[Organism] = []

    @classmethod
    def from_config(cls, config: 'SimulationConfig') -> 'Population':
        pop_cfg = config.population
        sel_cfg = config.selection
        return cls(
            n_diploids=pop_cfg.n_diploids,
            n_sites_per_chr=pop_cfg.n_sites_per_chr,
            exp_tes_per_ind=pop_cfg.init_tes_per_ind,
            total_map_dist=pop_cfg.total_map_dist,
            selection=SelectionParams(
                zygote_selection=sel_cfg.zygote_selection,
                sel_mult=sel_cfg.sel_mult,
                sel_exp=sel_cfg.sel_exp,
            ),
            max_viability_attempts=config.sampling.max_viability_attempts,
        )

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self):
        return iter(self.individuals)

    def __getitem__(self, idx: int) -> Organism:
        return self.individuals[idx]

    @property
    def n_loci_per_ind(self) -> int:
        return N_CHROMOSOMES * self.n_sites_per_chr // 2

    # ── setup ────────────────────────────────────────────────────────

    def initialize(self, rng: RandomSource) -> None:
        """Create all individuals at the same expected TE load."""
        logger.debug("initialization of %d individuals", self.n_diploids)
        individuals = []
        for _ in range(self.n_diploids):
            ind = Organism(self.n_sites_per_chr, selection=self.selection)
            ind.initialize(rng, self.exp_tes_per_ind)
            individuals.append(ind)
        self.individuals = individuals

    def set_individuals(self, individuals: Sequence[Organism]) -> None:
        """Replace the whole generation.

        Raises:
            ConfigurationError: Size or chromosome architecture differs.
        """
        if len(individuals) != self.n_diploids:
            raise ConfigurationError(
                f"new population has {len(individuals)} individuals, "
                f"expected {self.n_diploids}"
            )
        for ind in individuals:
            if (ind.n_chromosomes != N_CHROMOSOMES
                    or ind.n_sites_per_chr != self.n_sites_per_chr):
                raise ConfigurationError("new population has different features")
        self.individuals = list(individuals)

    # ── mating ───────────────────────────────────────────────────────

    def sample_couple(self, rng: RandomSource) -> Tuple[Organism, Organism]:
        """Draw two distinct individuals uniformly; return copies of them."""
        id1 = rng.uniform_int(self.n_diploids)
        id2 = rng.uniform_int(self.n_diploids - 1)
        if id2 >= id1:
            id2 += 1
        return self.individuals[id1].copy(), self.individuals[id2].copy()

    def make_new_generation(self, rng: RandomSource) -> int:
        """Replace the population by ``n_diploids`` viable offspring.

        For each offspring slot: sample a couple, draw one gamete from each
        parent, fecundate, and keep the zygote only if it is viable;
        otherwise try again. The population size is therefore exact
        whatever the viability rate.

        Returns:
            Number of zygotes rejected by selection.

        Raises:
            RetryBudgetExceeded: ``max_viability_attempts`` zygotes in a row
                were rejected for one slot.
        """
        new_individuals: List[Organism] = []
        n_rejected = 0
        attempts = 0
        while len(new_individuals) < self.n_diploids:
            parent1, parent2 = self.sample_couple(rng)
            gamete1 = parent1.get_gamete(rng, self.total_map_dist)
            gamete2 = parent2.get_gamete(rng, self.total_map_dist)
            child = Organism.fecundation(gamete1, gamete2, self.selection)
            attempts += 1
            if child.is_viable(rng):
                new_individuals.append(child)
                attempts = 0
                continue
            n_rejected += 1
            if (self.max_viability_attempts is not None
                    and attempts >= self.max_viability_attempts):
                raise RetryBudgetExceeded(
                    f"no viable zygote after {attempts} attempts for offspring "
                    f"{len(new_individuals) + 1}/{self.n_diploids}"
                )
        self.set_individuals(new_individuals)
        return n_rejected

    # ── TE events ────────────────────────────────────────────────────

    def loss(self, rng: RandomSource, prob_loss: float) -> int:
        """Apply loss to every individual; return the total number lost."""
        nb_losses = sum(ind.loss(rng, prob_loss) for ind in self.individuals)
        logger.debug("nb of losses: %d", nb_losses)
        return nb_losses

    def transposition(self, rng: RandomSource, prob_transp0: float, k: float) -> int:
        """Apply transposition to every individual; return the total inserted."""
        nb_transp = sum(
            ind.transposition(rng, prob_transp0, k) for ind in self.individuals
        )
        logger.debug("nb of transpositions: %d", nb_transp)
        return nb_transp

    # ── statistics ───────────────────────────────────────────────────

    def loads(self) -> np.ndarray:
        """(n_diploids,) TE count per individual."""
        return np.array([ind.load() for ind in self.individuals], dtype=np.int64)

    def total_load(self) -> int:
        return int(self.loads().sum())

    def occupancy_matrix(self) -> np.ndarray:
        """(n_diploids, n_loci) copies carrying a TE per individual and locus."""
        occ = np.zeros((len(self.individuals), self.n_loci_per_ind), dtype=np.int64)
        for i, ind in enumerate(self.individuals):
            ind.occupancy_per_locus(occ[i])
        return occ

    def te_frequency_per_locus(self) -> np.ndarray:
        """(n_loci,) frequency of TE-carrying copies among the 2N homologues."""
        occ = self.occupancy_matrix()
        return occ.sum(axis=0) / (2.0 * len(self.individuals))

    def prop_empty_loci(self) -> float:
        """Fraction of (locus, individual) pairs where no copy carries a TE."""
        occ = self.occupancy_matrix()
        if occ.size == 0:
            return 0.0
        return float(np.count_nonzero(occ == 0)) / occ.size

    def summary(self) -> LoadSummary:
        return compute_load_summary(self.loads(), self.prop_empty_loci())

    def describe(self) -> str:
        """One-line summary of the load distribution (progress output)."""
        s = compute_load_summary(self.loads())
        return (f"TEs={s.total} mean={s.mean:.3g} sd={s.sd:.3g} min={s.min} "
                f"q25={s.q25:.3g} med={s.median:.3g} q75={s.q75:.3g} max={s.max}")
