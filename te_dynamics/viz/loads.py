"""TE load visualizations for te_dynamics.

Every function:
  - Accepts model results (ReplicateResult list) or a Population as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``te_dynamics.viz.style``
"""

from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
from scipy import stats as sp_stats

from te_dynamics.viz.style import (
    EVENT_COLORS,
    TEXT_COLOR,
    dark_figure,
    legend_kwargs,
    replicate_color,
    save_figure,
)

if TYPE_CHECKING:
    from te_dynamics.model import ReplicateResult
    from te_dynamics.population import Population


# ═══════════════════════════════════════════════════════════════════════
# 1. MEAN LOAD TRAJECTORIES
# ═══════════════════════════════════════════════════════════════════════

def plot_mean_load_trajectories(
    results: Sequence['ReplicateResult'],
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Mean number of TEs per individual over generations, one line per replicate.

    Replicates that went extinct early stop where their last row was written.

    Args:
        results: ReplicateResult list from run_simulations().
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    fig, ax = dark_figure()
    for i, res in enumerate(results):
        gens = [r.generation for r in res.records]
        ax.plot(gens, res.mean_loads, color=replicate_color(i), linewidth=1.5,
                alpha=0.85, label=f'simu {res.replicate_id}')
    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Mean TEs per individual', fontsize=12)
    ax.set_title('TE Copy Number Trajectories', fontsize=14, fontweight='bold')
    ax.set_ylim(bottom=0)
    if 0 < len(results) <= 10:
        ax.legend(**legend_kwargs())

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. LOAD DISTRIBUTION
# ═══════════════════════════════════════════════════════════════════════

def plot_load_distribution(
    population: 'Population',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Histogram of TE counts per individual with a Poisson reference.

    Without selection the load distribution stays close to Poisson with the
    same mean (C&C 1983); the overlay makes over-dispersion visible.

    Args:
        population: Population to summarize.
        save_path: Optional save path.

    Returns:
        matplotlib Figure.
    """
    loads = population.loads()
    fig, ax = dark_figure()
    upper = int(loads.max()) if loads.size else 0
    bins = np.arange(upper + 2) - 0.5
    ax.hist(loads, bins=bins, density=True, color=EVENT_COLORS['transposition'],
            alpha=0.7, label='observed')

    mean = float(loads.mean()) if loads.size else 0.0
    if mean > 0:
        x = np.arange(upper + 1)
        ax.plot(x, sp_stats.poisson.pmf(x, mean), 'o--', color=TEXT_COLOR,
                linewidth=1.2, markersize=4, label=f'Poisson({mean:.2f})')

    ax.set_xlabel('TEs per individual', fontsize=12)
    ax.set_ylabel('Frequency', fontsize=12)
    ax.set_title('TE Load Distribution', fontsize=14, fontweight='bold')
    ax.legend(**legend_kwargs())

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 3. EVENT COUNTS
# ═══════════════════════════════════════════════════════════════════════

def plot_event_counts(
    result: 'ReplicateResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Transpositions, losses and rejected zygotes per generation (one replicate).

    Args:
        result: ReplicateResult.
        save_path: Optional save path.

    Returns:
        matplotlib Figure.
    """
    records = result.records[1:]   # generation 0 has no events
    gens = [r.generation for r in records]
    fig, ax = dark_figure()
    ax.plot(gens, [r.n_transpositions for r in records],
            color=EVENT_COLORS['transposition'], linewidth=1.5, label='transpositions')
    ax.plot(gens, [r.n_losses for r in records],
            color=EVENT_COLORS['loss'], linewidth=1.5, label='losses')
    ax.plot(gens, [r.n_rejected_zygotes for r in records],
            color=EVENT_COLORS['rejected'], linewidth=1.0, linestyle=':',
            label='rejected zygotes')
    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Events', fontsize=12)
    ax.set_title(f'TE Events (simu {result.replicate_id})',
                 fontsize=14, fontweight='bold')
    ax.set_ylim(bottom=0)
    ax.legend(**legend_kwargs())

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 4. PER-LOCUS FREQUENCIES
# ═══════════════════════════════════════════════════════════════════════

def plot_locus_frequencies(
    population: 'Population',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Frequency of TE-carrying copies at every locus, pair A then pair B.

    Args:
        population: Population to summarize.
        save_path: Optional save path.

    Returns:
        matplotlib Figure.
    """
    freqs = population.te_frequency_per_locus()
    n_per_pair = population.n_sites_per_chr
    fig, ax = dark_figure()
    loci = np.arange(freqs.size)
    colors = [replicate_color(locus // n_per_pair) for locus in loci]
    ax.bar(loci, freqs, color=colors, width=0.9)
    ax.axvline(n_per_pair - 0.5, color=TEXT_COLOR, linestyle='--', linewidth=1.0,
               alpha=0.6)
    ax.set_xlabel('Locus (pair A | pair B)', fontsize=12)
    ax.set_ylabel('TE frequency', fontsize=12)
    ax.set_title('Per-Locus TE Frequency', fontsize=14, fontweight='bold')
    ax.set_ylim(0, 1)

    if save_path:
        save_figure(fig, save_path)
    return fig
