"""Chromosome representation: a fixed-length sequence of TE-presence bits.

Site-level stochastic operators:
  - initialize: independent Bernoulli(p) occupancy per site
  - loss: excise one TE chosen uniformly among occupied sites
  - transposition: insert one TE at a site chosen uniformly among empty sites

Both loss and transposition sample directly from the occupied / empty
index sets, so a single call always costs one uniform draw.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from te_dynamics.errors import ConfigurationError, EmptyGenomeError, SaturationError
from te_dynamics.rng import RandomSource


class Genome:
    """One chromosome copy.

    Args:
        n_sites: Number of sites (fixed for the lifetime of the object).
    """

    __slots__ = ('sites',)

    def __init__(self, n_sites: int):
        if n_sites < 1:
            raise ConfigurationError(f"a chromosome needs at least 1 site, got {n_sites}")
        self.sites = np.zeros(n_sites, dtype=np.int8)

    @classmethod
    def from_sequence(cls, sequence: Sequence[int]) -> 'Genome':
        """Build a chromosome from an explicit 0/1 sequence."""
        genome = cls(len(sequence))
        genome.set_sequence(sequence)
        return genome

    # ── basic accessors ──────────────────────────────────────────────

    @property
    def n_sites(self) -> int:
        return int(self.sites.shape[0])

    def __len__(self) -> int:
        return self.n_sites

    def __getitem__(self, site):
        return self.sites[site]

    def __setitem__(self, site, value) -> None:
        self.sites[site] = value

    def __eq__(self, other) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        return np.array_equal(self.sites, other.sites)

    def __repr__(self) -> str:
        return f"Genome({self})"

    def __str__(self) -> str:
        return ''.join(str(int(b)) for b in self.sites)

    def copy(self) -> 'Genome':
        genome = Genome.__new__(Genome)
        genome.sites = self.sites.copy()
        return genome

    def set_sequence(self, sequence: Iterable[int]) -> None:
        """Replace the site values, keeping the length.

        Raises:
            ConfigurationError: Wrong length or a value outside {0, 1}.
        """
        values = np.asarray(list(sequence), dtype=np.int8)
        if values.shape != self.sites.shape:
            raise ConfigurationError(
                f"sequence of length {values.size} does not fit a chromosome "
                f"of {self.n_sites} sites"
            )
        if np.any((values != 0) & (values != 1)):
            raise ConfigurationError("chromosome sites must be 0 or 1")
        self.sites[:] = values

    def has_te(self, site: int) -> bool:
        return bool(self.sites[site] == 1)

    def load(self) -> int:
        """Number of TEs (occupied sites)."""
        return int(self.sites.sum())

    # ── stochastic operators ─────────────────────────────────────────

    def initialize(self, rng: RandomSource, p: float) -> None:
        """Occupy each site independently with probability ``p``."""
        self.sites[:] = (rng.uniform(self.n_sites) < p).astype(np.int8)

    def loss(self, rng: RandomSource) -> int:
        """Excise one TE, uniformly among the occupied sites.

        Returns:
            Index of the emptied site.

        Raises:
            EmptyGenomeError: The chromosome carries no TE.
        """
        occupied = np.flatnonzero(self.sites)
        if occupied.size == 0:
            raise EmptyGenomeError("loss requested on a chromosome without TE")
        site = int(occupied[rng.uniform_int(occupied.size)])
        self.sites[site] = 0
        return site

    def transposition(self, rng: RandomSource) -> int:
        """Insert one TE, uniformly among the empty sites.

        Returns:
            Index of the newly occupied site.

        Raises:
            SaturationError: Every site is already occupied.
        """
        empty = np.flatnonzero(self.sites == 0)
        if empty.size == 0:
            raise SaturationError("no more empty sites on the chromosome")
        site = int(empty[rng.uniform_int(empty.size)])
        self.sites[site] = 1
        return site
