"""Shared fixtures: seeded random sources and a scripted random double."""

import numpy as np
import pytest

from te_dynamics.rng import create_random_source


class ScriptedRandom:
    """RandomSource stand-in replaying queued draws.

    Draws are consumed in order per kind; running out of a queue fails the
    test, which also checks that no unexpected draw happens.
    """

    def __init__(self, ints=(), poissons=(), uniforms=()):
        self.ints = list(ints)
        self.poissons = list(poissons)
        self.uniforms = list(uniforms)
        self.poisson_means = []
        self.int_bounds = []

    def uniform_int(self, n):
        assert self.ints, "unexpected uniform_int draw"
        value = self.ints.pop(0)
        assert 0 <= value < n, f"scripted {value} outside [0, {n})"
        self.int_bounds.append(n)
        return value

    def poisson(self, lam):
        assert self.poissons, "unexpected poisson draw"
        self.poisson_means.append(lam)
        return self.poissons.pop(0)

    def uniform(self, size=None):
        if size is None:
            assert self.uniforms, "unexpected uniform draw"
            return self.uniforms.pop(0)
        assert len(self.uniforms) >= size, "not enough scripted uniform draws"
        values = np.array(self.uniforms[:size], dtype=np.float64)
        del self.uniforms[:size]
        return values

    def exhausted(self):
        return not (self.ints or self.poissons or self.uniforms)


@pytest.fixture
def rng():
    return create_random_source(42)


@pytest.fixture
def scripted():
    """Factory: scripted(ints=[...], poissons=[...], uniforms=[...])."""
    return ScriptedRandom
