"""Generation loop of the CC83 transposable-element model.

Per replicate:
  - Generation 0: build and initialize the population, record statistics
  - Generations 1..G, while the population still carries TEs:
      1. Random mating with zygote selection (new generation)
      2. Loss (excision) in every individual
      3. Transposition in every individual
      4. Record statistics
  - A TE-free population is absorbing: the replicate stops early
    (EXTINCT_EARLY) and no further rows are written.

Replicates share one random stream sequentially unless
``simulation.independent_streams`` is set, in which case each replicate
gets its own spawned stream.

A fatal invariant violation (SimulationAbort) marks the replicate ABORTED
and stops the whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from te_dynamics.config import SimulationConfig, default_config
from te_dynamics.errors import SimulationAbort
from te_dynamics.output import TsvWriter
from te_dynamics.population import LoadSummary, Population
from te_dynamics.rng import RandomSource, create_random_source, create_replicate_streams
from te_dynamics.types import SimulationState
from te_dynamics.utils import timer

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# RESULT CONTAINERS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class GenerationRecord:
    """Statistics and event counts of one simulated generation."""
    generation: int
    summary: LoadSummary
    n_losses: int = 0
    n_transpositions: int = 0
    n_rejected_zygotes: int = 0


@dataclass
class ReplicateResult:
    """Outcome of one replicate."""
    replicate_id: int
    n_generations: int                   # requested G
    state: SimulationState = SimulationState.INITIALIZED
    records: List[GenerationRecord] = field(default_factory=list)
    error: Optional[SimulationAbort] = None

    @property
    def last_generation(self) -> int:
        """Last generation with a recorded row (-1 if none)."""
        return self.records[-1].generation if self.records else -1

    @property
    def total_loads(self) -> np.ndarray:
        """(n_records,) population TE count per recorded generation."""
        return np.array([r.summary.total for r in self.records], dtype=np.int64)

    @property
    def mean_loads(self) -> np.ndarray:
        """(n_records,) mean TE count per individual per recorded generation."""
        return np.array([r.summary.mean for r in self.records], dtype=np.float64)


# ═══════════════════════════════════════════════════════════════════════
# SINGLE REPLICATE
# ═══════════════════════════════════════════════════════════════════════

def _progress_line(replicate_id: int, generation: int, n_generations: int) -> str:
    return f"simulation {replicate_id}: generation {generation:04d}/{n_generations}"


def run_replicate(
    config: SimulationConfig,
    rng: RandomSource,
    replicate_id: int = 1,
    writer: Optional[TsvWriter] = None,
) -> ReplicateResult:
    """Run the generation loop for one replicate.

    Args:
        config: Validated simulation configuration.
        rng: Random source; consumed in a fixed order.
        replicate_id: 1-based replicate number written in the 'simu' column.
        writer: Optional output writer receiving one row per generation.

    Returns:
        ReplicateResult in state COMPLETED or EXTINCT_EARLY.

    Raises:
        SimulationAbort: Fatal invariant violation. The partial result is
            attached to the exception as ``exc.result`` with state ABORTED.
    """
    n_gen = config.simulation.n_generations
    tr = config.transposition
    result = ReplicateResult(replicate_id=replicate_id, n_generations=n_gen)

    pop = Population.from_config(config)
    pop.initialize(rng)

    def record(generation: int, n_losses: int = 0, n_transp: int = 0,
               n_rejected: int = 0) -> None:
        summary = pop.summary()
        result.records.append(GenerationRecord(
            generation=generation,
            summary=summary,
            n_losses=n_losses,
            n_transpositions=n_transp,
            n_rejected_zygotes=n_rejected,
        ))
        if writer is not None:
            writer.write_row(replicate_id, generation, summary)

    record(0)
    result.state = SimulationState.RUNNING

    try:
        for g in range(1, n_gen + 1):
            if logger.isEnabledFor(logging.INFO):
                logger.info("%s %s", _progress_line(replicate_id, g, n_gen),
                            pop.describe())
            if pop.total_load() == 0:
                result.state = SimulationState.EXTINCT_EARLY
                logger.info("simulation %d: TEs lost at generation %d",
                            replicate_id, g - 1)
                return result
            n_rejected = pop.make_new_generation(rng)
            n_losses = pop.loss(rng, tr.prob_loss)
            n_transp = pop.transposition(rng, tr.prob_transp0, tr.k)
            record(g, n_losses, n_transp, n_rejected)
    except SimulationAbort as exc:
        result.state = SimulationState.ABORTED
        result.error = exc
        exc.result = result
        logger.error("simulation %d aborted at generation %d: %s",
                     replicate_id, result.last_generation + 1, exc)
        raise

    result.state = SimulationState.COMPLETED
    return result


# ═══════════════════════════════════════════════════════════════════════
# MULTIPLE REPLICATES
# ═══════════════════════════════════════════════════════════════════════

def run_simulations(
    config: Optional[SimulationConfig] = None,
    writer: Optional[TsvWriter] = None,
) -> List[ReplicateResult]:
    """Run every replicate of a configuration.

    Args:
        config: Simulation configuration; defaults if None.
        writer: Optional writer. It must already be opened; closing is left
            to the caller.

    Returns:
        One ReplicateResult per replicate, in order.

    Raises:
        SimulationAbort: The first fatal abort stops the run.
    """
    if config is None:
        config = default_config()
    sim = config.simulation

    if sim.independent_streams:
        streams = create_replicate_streams(sim.seed, sim.n_replicates)
    else:
        shared = create_random_source(sim.seed)
        streams = [shared] * sim.n_replicates

    results = []
    for replicate_id, rng in enumerate(streams, start=1):
        with timer(f"simulation {replicate_id}"):
            result = run_replicate(config, rng, replicate_id=replicate_id,
                                   writer=writer)
        logger.info("simulation %d: %s after %d generation(s)",
                    replicate_id, result.state.name, result.last_generation)
        results.append(result)
    return results
