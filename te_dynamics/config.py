"""Configuration system for te_dynamics.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → command-line overrides

Defaults follow the reference parameterization of the CC83 model
(10 diploids, 31 sites per chromosome, 10 TEs per individual,
u0 = 0.01, k = 0.05, v = 0.005, loose linkage d = 90).
"""

from __future__ import annotations

import dataclasses
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from te_dynamics.errors import ConfigurationError
from te_dynamics.types import N_CHROMOSOMES


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Replicates, duration and random stream."""
    n_replicates: int = 1
    n_generations: int = 10
    seed: int = 1859
    independent_streams: bool = False   # one spawned stream per replicate


@dataclass
class PopulationSection:
    """Population size and chromosome architecture."""
    n_diploids: int = 10
    n_sites_per_chr: int = 31
    init_tes_per_ind: float = 10        # expected TEs per individual at t=0
    total_map_dist: float = 90          # crossovers per meiosis; 90 loose, 9 tight


@dataclass
class TranspositionSection:
    """TE event rates (per TE per generation)."""
    prob_transp0: float = 0.01   # u0, transposition rate at zero load
    k: float = 0.05              # regulation: u(n) = u0 / (1 + k n); 0 disables
    prob_loss: float = 0.005     # v, excision rate


@dataclass
class SelectionSection:
    """Zygote selection, w(n) = 1 - sel_mult * n^sel_exp."""
    zygote_selection: bool = False
    sel_mult: float = 0.001
    sel_exp: float = 1.5


@dataclass
class SamplingSection:
    """Bounds on rejection sampling."""
    max_viability_attempts: Optional[int] = 1_000_000   # per offspring; None = unbounded


@dataclass
class OutputSection:
    """Output control."""
    path: str = "data.tsv"
    verbose: int = 0


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    population: PopulationSection = field(default_factory=PopulationSection)
    transposition: TranspositionSection = field(default_factory=TranspositionSection)
    selection: SelectionSection = field(default_factory=SelectionSection)
    sampling: SamplingSection = field(default_factory=SamplingSection)
    output: OutputSection = field(default_factory=OutputSection)


SECTION_MAP = {
    'simulation': SimulationSection,
    'population': PopulationSection,
    'transposition': TranspositionSection,
    'selection': SelectionSection,
    'sampling': SamplingSection,
    'output': OutputSection,
}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, rejecting unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    unknown = sorted(set(data) - valid_fields)
    if unknown:
        raise ConfigurationError(
            f"unknown parameter(s) for {section_cls.__name__}: {', '.join(unknown)}"
        )
    return section_cls(**data)


def _dict_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged dict to a SimulationConfig."""
    unknown = sorted(set(data) - set(SECTION_MAP))
    if unknown:
        raise ConfigurationError(f"unknown configuration section(s): {', '.join(unknown)}")
    sections = {}
    for key, cls in SECTION_MAP.items():
        value = data.get(key)
        if value is None:
            sections[key] = cls()
        elif isinstance(value, dict):
            sections[key] = _dict_to_section(cls, value)
        else:
            raise ConfigurationError(f"section '{key}' must be a mapping")
    return SimulationConfig(**sections)


def config_to_dict(config: SimulationConfig) -> Dict[str, Dict[str, Any]]:
    """Nested plain-dict view of a configuration (YAML-serializable)."""
    return dataclasses.asdict(config)


def parameter_items(config: SimulationConfig) -> List[Tuple[str, Any]]:
    """Flatten a configuration to ('section.key', value) pairs in field order."""
    items = []
    for section, values in config_to_dict(config).items():
        for key, value in values.items():
            items.append((f"{section}.{key}", value))
    return items


def _check_type(name: str, value: Any, kind: str) -> None:
    """Raise ConfigurationError when ``value`` is not of the expected kind."""
    if kind == 'bool':
        ok = isinstance(value, bool)
    elif kind == 'int':
        ok = isinstance(value, numbers.Integral) and not isinstance(value, bool)
    else:
        ok = isinstance(value, numbers.Real) and not isinstance(value, bool)
    if not ok:
        raise ConfigurationError(
            f"{name} must be of type {kind}, got {value!r} ({type(value).__name__})"
        )


# section → (field, expected kind); checked before any range check
_FIELD_TYPES = {
    'simulation': (('n_replicates', 'int'), ('n_generations', 'int'),
                   ('seed', 'int'), ('independent_streams', 'bool')),
    'population': (('n_diploids', 'int'), ('n_sites_per_chr', 'int'),
                   ('init_tes_per_ind', 'real'), ('total_map_dist', 'real')),
    'transposition': (('prob_transp0', 'real'), ('k', 'real'),
                      ('prob_loss', 'real')),
    'selection': (('zygote_selection', 'bool'), ('sel_mult', 'real'),
                  ('sel_exp', 'real')),
    'output': (('verbose', 'int'),),
}


def _check_types(config: SimulationConfig) -> None:
    for section, fields in _FIELD_TYPES.items():
        values = getattr(config, section)
        for key, kind in fields:
            _check_type(f"{section}.{key}", getattr(values, key), kind)
    budget = config.sampling.max_viability_attempts
    if budget is not None:
        _check_type("sampling.max_viability_attempts", budget, 'int')
    if not isinstance(config.output.path, (str, Path)):
        raise ConfigurationError(
            f"output.path must be a string, got {config.output.path!r}"
        )


def _check_probability(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} should be between 0 and 1, got {value}")


def validate_config(config: SimulationConfig) -> None:
    """Validate parameter ranges. Raises ConfigurationError on failure.

    Checks:
      - Counts, seed and verbosity are integers; rates, loads and map
        distance are real numbers; switches are booleans
      - At least one replicate, non-negative generations and seed
      - At least 2 individuals and 4 sites per chromosome
      - Initial load between 1 and the number of sites per individual
      - Rates are probabilities; map distance and k are non-negative
    """
    _check_types(config)

    sim = config.simulation
    if sim.n_replicates < 1:
        raise ConfigurationError(
            f"requires at least 1 simulation, got {sim.n_replicates}"
        )
    if sim.n_generations < 0:
        raise ConfigurationError(
            f"simulation.n_generations must be >= 0, got {sim.n_generations}"
        )
    if sim.seed < 0:
        raise ConfigurationError("simulation.seed must be non-negative")

    pop = config.population
    if pop.n_diploids < 2:
        raise ConfigurationError(
            f"requires at least 2 individuals, got {pop.n_diploids}"
        )
    if pop.n_sites_per_chr < 4:
        raise ConfigurationError(
            f"requires at least 4 sites per chromosome, got {pop.n_sites_per_chr}"
        )
    capacity = N_CHROMOSOMES * pop.n_sites_per_chr
    if not 1 <= pop.init_tes_per_ind <= capacity:
        raise ConfigurationError(
            f"population.init_tes_per_ind must be in [1, {capacity}], "
            f"got {pop.init_tes_per_ind}"
        )
    if pop.total_map_dist < 0:
        raise ConfigurationError("population.total_map_dist must be non-negative")

    tr = config.transposition
    _check_probability("transposition.prob_transp0", tr.prob_transp0)
    _check_probability("transposition.prob_loss", tr.prob_loss)
    if tr.k < 0:
        raise ConfigurationError(f"transposition.k must be non-negative, got {tr.k}")

    sel = config.selection
    if sel.sel_mult < 0:
        raise ConfigurationError("selection.sel_mult must be non-negative")
    if sel.sel_exp < 0:
        raise ConfigurationError("selection.sel_exp must be non-negative")

    budget = config.sampling.max_viability_attempts
    if budget is not None and budget < 1:
        raise ConfigurationError(
            f"sampling.max_viability_attempts must be >= 1 or null, got {budget}"
        )

    if config.output.verbose < 0:
        raise ConfigurationError("output.verbose must be non-negative")


def _read_yaml(path: Path) -> Dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: defaults → base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        overrides: Optional dict of overrides (e.g. from the command line).

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ConfigurationError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    config_dict = config_to_dict(SimulationConfig())
    deep_merge(config_dict, _read_yaml(base_path))

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        deep_merge(config_dict, _read_yaml(scenario_path))

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _dict_to_config(config_dict)
    validate_config(config)
    return config


def config_from_overrides(overrides: Optional[Dict] = None) -> SimulationConfig:
    """Defaults merged with ``overrides``, validated."""
    config_dict = config_to_dict(SimulationConfig())
    if overrides:
        deep_merge(config_dict, overrides)
    config = _dict_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
