"""Integration tests for te_dynamics.model — the generation loop."""

import numpy as np
import pytest

from te_dynamics.config import config_from_overrides
from te_dynamics.errors import SaturationError
from te_dynamics.model import ReplicateResult, run_replicate, run_simulations
from te_dynamics.output import TsvWriter, read_output
from te_dynamics.population import Population
from te_dynamics.rng import create_random_source
from te_dynamics.types import SimulationState


def make_config(**sections):
    return config_from_overrides(sections)


class TestRunReplicate:
    def test_completes_requested_generations(self):
        config = make_config(simulation={'n_generations': 8})
        result = run_replicate(config, create_random_source(1859))
        assert result.state == SimulationState.COMPLETED
        assert [r.generation for r in result.records] == list(range(9))
        assert result.last_generation == 8

    def test_zero_generations_records_initial_state(self):
        config = make_config(simulation={'n_generations': 0})
        result = run_replicate(config, create_random_source(1))
        assert result.state == SimulationState.COMPLETED
        assert len(result.records) == 1
        assert result.records[0].n_transpositions == 0

    def test_event_counts_explain_load_change(self):
        """Mating keeps the TE count only on average; events are exact."""
        config = make_config(simulation={'n_generations': 10},
                             transposition={'prob_transp0': 0.1, 'prob_loss': 0.05})
        result = run_replicate(config, create_random_source(3))
        for rec in result.records[1:]:
            assert rec.n_losses >= 0
            assert rec.n_transpositions >= 0
            assert rec.n_rejected_zygotes == 0

    def test_extinction_stops_early(self):
        config = make_config(
            simulation={'n_generations': 200},
            population={'n_diploids': 2, 'init_tes_per_ind': 1},
            transposition={'prob_loss': 1.0, 'prob_transp0': 0.0},
        )
        result = run_replicate(config, create_random_source(1859))
        assert result.state == SimulationState.EXTINCT_EARLY
        assert result.records[-1].summary.total == 0
        assert result.last_generation < 200
        # no row after the first TE-free generation
        assert all(r.summary.total > 0 for r in result.records[:-1])

    def test_saturation_aborts(self):
        config = make_config(
            simulation={'n_generations': 5},
            population={'n_sites_per_chr': 4, 'init_tes_per_ind': 16},
            transposition={'prob_loss': 0.0},
        )
        with pytest.raises(SaturationError) as info:
            run_replicate(config, create_random_source(1))
        result = info.value.result
        assert isinstance(result, ReplicateResult)
        assert result.state == SimulationState.ABORTED
        assert result.error is info.value
        assert result.last_generation == 0

    def test_abort_is_logged(self, caplog):
        config = make_config(
            population={'n_sites_per_chr': 4, 'init_tes_per_ind': 16},
            transposition={'prob_loss': 0.0},
        )
        with caplog.at_level('ERROR', logger='te_dynamics.model'):
            with pytest.raises(SaturationError):
                run_replicate(config, create_random_source(1))
        assert any("aborted" in rec.message for rec in caplog.records)

    def test_progress_logged_at_info(self, caplog):
        config = make_config(simulation={'n_generations': 2})
        with caplog.at_level('INFO', logger='te_dynamics.model'):
            run_replicate(config, create_random_source(1))
        messages = [rec.message for rec in caplog.records]
        assert any("generation 0001/2" in m for m in messages)
        assert any("generation 0002/2" in m for m in messages)

    def test_no_distribution_summary_when_info_disabled(self, caplog, monkeypatch):
        def fail(self):
            raise AssertionError("describe() called with INFO disabled")

        monkeypatch.setattr(Population, 'describe', fail)
        config = make_config(simulation={'n_generations': 3})
        with caplog.at_level('WARNING', logger='te_dynamics.model'):
            result = run_replicate(config, create_random_source(1))
        assert result.state == SimulationState.COMPLETED

    def test_selection_run_keeps_population_size(self):
        config = make_config(
            simulation={'n_generations': 5},
            population={'n_diploids': 20, 'init_tes_per_ind': 30},
            selection={'zygote_selection': True, 'sel_mult': 0.002},
            transposition={'k': 0.0},
        )
        result = run_replicate(config, create_random_source(8))
        assert result.state == SimulationState.COMPLETED
        assert sum(r.n_rejected_zygotes for r in result.records) > 0


class TestReproducibility:
    def test_same_seed_same_trajectory(self):
        config = make_config(simulation={'n_generations': 15, 'n_replicates': 2})
        first = run_simulations(config)
        second = run_simulations(config)
        for a, b in zip(first, second):
            np.testing.assert_array_equal(a.total_loads, b.total_loads)
            assert [r.summary for r in a.records] == [r.summary for r in b.records]

    def test_different_seed_differs(self):
        a = run_simulations(make_config(simulation={'n_generations': 15, 'seed': 1}))
        b = run_simulations(make_config(simulation={'n_generations': 15, 'seed': 2}))
        assert not np.array_equal(a[0].total_loads, b[0].total_loads)

    def test_shared_stream_replicates_differ(self):
        config = make_config(simulation={'n_generations': 10, 'n_replicates': 2})
        r1, r2 = run_simulations(config)
        assert not np.array_equal(r1.total_loads, r2.total_loads)

    def test_independent_streams_prefix_stable(self):
        few = run_simulations(make_config(
            simulation={'n_generations': 10, 'n_replicates': 2,
                        'independent_streams': True}))
        many = run_simulations(make_config(
            simulation={'n_generations': 10, 'n_replicates': 3,
                        'independent_streams': True}))
        assert len(many) == 3
        for a, b in zip(few, many):
            np.testing.assert_array_equal(a.total_loads, b.total_loads)


class TestRunSimulations:
    def test_default_config(self):
        results = run_simulations()
        assert len(results) == 1
        assert results[0].replicate_id == 1
        assert results[0].state == SimulationState.COMPLETED

    def test_replicate_ids(self):
        results = run_simulations(make_config(
            simulation={'n_generations': 2, 'n_replicates': 3}))
        assert [r.replicate_id for r in results] == [1, 2, 3]

    def test_rows_written(self, tmp_path):
        config = make_config(simulation={'n_generations': 4, 'n_replicates': 2})
        writer = TsvWriter(tmp_path / "run.tsv")
        writer.open(config)
        results = run_simulations(config, writer=writer)
        writer.close()

        parsed = read_output(tmp_path / "run.tsv")
        rows = parsed['rows']
        assert len(rows) == writer.n_rows == sum(len(r.records) for r in results)
        assert [row['simu'] for row in rows[:5]] == [1.0] * 5
        assert [row['gen'] for row in rows[:5]] == [0.0, 1.0, 2.0, 3.0, 4.0]
        assert rows[0]['nC'] == results[0].records[0].summary.total

    def test_mean_loads_property(self):
        result = run_simulations(make_config(simulation={'n_generations': 3}))[0]
        assert result.mean_loads.shape == (4,)
        np.testing.assert_allclose(
            result.mean_loads, result.total_loads / 10.0)
