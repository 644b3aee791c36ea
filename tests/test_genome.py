"""Tests for te_dynamics.genome — chromosome sites and site-level operators."""

import numpy as np
import pytest

from te_dynamics.errors import ConfigurationError, EmptyGenomeError, SaturationError
from te_dynamics.genome import Genome
from te_dynamics.rng import create_random_source


class TestConstruction:
    def test_starts_empty(self):
        g = Genome(10)
        assert g.n_sites == 10
        assert len(g) == 10
        assert g.load() == 0
        assert g.sites.dtype == np.int8

    def test_needs_at_least_one_site(self):
        with pytest.raises(ConfigurationError):
            Genome(0)

    def test_from_sequence(self):
        g = Genome.from_sequence([0, 1, 1, 0, 1])
        assert g.n_sites == 5
        assert g.load() == 3
        assert str(g) == "01101"

    def test_set_sequence_wrong_length(self):
        g = Genome(4)
        with pytest.raises(ConfigurationError):
            g.set_sequence([1, 0, 1])

    def test_set_sequence_rejects_non_binary(self):
        g = Genome(3)
        with pytest.raises(ConfigurationError):
            g.set_sequence([0, 2, 1])

    def test_set_sequence_keeps_length(self):
        g = Genome(3)
        g.set_sequence([1, 1, 0])
        assert g.n_sites == 3
        assert g.has_te(0) and g.has_te(1) and not g.has_te(2)

    def test_item_access(self):
        g = Genome(4)
        g[2] = 1
        assert g[2] == 1
        assert g.load() == 1


class TestValueSemantics:
    def test_equality(self):
        assert Genome.from_sequence([1, 0, 1]) == Genome.from_sequence([1, 0, 1])
        assert Genome.from_sequence([1, 0, 1]) != Genome.from_sequence([1, 1, 1])

    def test_different_lengths_not_equal(self):
        assert Genome(3) != Genome(4)

    def test_copy_is_independent(self):
        g = Genome.from_sequence([1, 0, 0])
        c = g.copy()
        assert c == g
        c[1] = 1
        assert g.load() == 1
        assert c.load() == 2


class TestInitialize:
    def test_p_zero_gives_empty(self, rng):
        g = Genome(50)
        g.initialize(rng, 0.0)
        assert g.load() == 0

    def test_p_one_gives_full(self, rng):
        g = Genome(50)
        g.initialize(rng, 1.0)
        assert g.load() == 50

    def test_binomial_load(self):
        """Load after initialize is Binomial(N, p): check mean and variance."""
        rng = create_random_source(7)
        n, p = 100, 0.3
        loads = []
        for _ in range(2000):
            g = Genome(n)
            g.initialize(rng, p)
            loads.append(g.load())
        loads = np.array(loads)
        assert abs(loads.mean() - n * p) < 0.5
        assert abs(loads.var() - n * p * (1 - p)) < 2.5

    def test_reinitialize_overwrites(self, rng):
        g = Genome(20)
        g.initialize(rng, 1.0)
        g.initialize(rng, 0.0)
        assert g.load() == 0


class TestLoss:
    def test_removes_exactly_one(self, rng):
        g = Genome.from_sequence([1, 1, 0, 1, 1, 0])
        site = g.loss(rng)
        assert g.load() == 3
        assert g[site] == 0

    def test_rank_selects_occupied_site_in_order(self, scripted):
        """Rank r (0-based) clears the r-th occupied site in index order."""
        g = Genome.from_sequence([0, 1, 0, 1, 1])
        site = g.loss(scripted(ints=[1]))
        assert site == 3
        assert str(g) == "01001"

    def test_draw_bound_is_load(self, scripted):
        g = Genome.from_sequence([1, 0, 1, 1])
        r = scripted(ints=[0])
        g.loss(r)
        assert r.int_bounds == [3]

    def test_empty_genome_raises(self, rng):
        with pytest.raises(EmptyGenomeError):
            Genome(5).loss(rng)

    def test_uniform_among_occupied(self):
        rng = create_random_source(3)
        counts = np.zeros(6, dtype=int)
        for _ in range(3000):
            g = Genome.from_sequence([1, 0, 1, 0, 1, 0])
            counts[g.loss(rng)] += 1
        assert counts[1] == counts[3] == counts[5] == 0
        for site in (0, 2, 4):
            assert 850 < counts[site] < 1150


class TestTransposition:
    def test_inserts_exactly_one(self, rng):
        g = Genome.from_sequence([1, 0, 0, 1])
        site = g.transposition(rng)
        assert g.load() == 3
        assert site in (1, 2)

    def test_single_empty_site(self, rng):
        g = Genome.from_sequence([1, 1, 0, 1])
        assert g.transposition(rng) == 2
        assert g.load() == 4

    def test_draw_bound_is_number_of_empty_sites(self, scripted):
        g = Genome.from_sequence([1, 0, 0, 1, 0])
        r = scripted(ints=[2])
        assert g.transposition(r) == 4
        assert r.int_bounds == [3]

    def test_full_genome_raises(self, rng):
        g = Genome.from_sequence([1, 1, 1])
        with pytest.raises(SaturationError):
            g.transposition(rng)

    def test_loss_then_transposition_restores_load(self, rng):
        """Aggregate load is restored; the position need not be."""
        g = Genome.from_sequence([1, 0, 1, 1, 0, 0, 1, 0])
        before = g.load()
        g.loss(rng)
        g.transposition(rng)
        assert g.load() == before
