"""Command-line entry point.

Usage:
    te-dynamics -s 10 -n 100 -g 500 -o results/run.tsv
    te-dynamics --config configs/default.yaml -S -m 0.001 -e 1.5 -v 1
    python -m te_dynamics -h

Options mirror the configuration sections; any option given on the command
line overrides the value read from ``--config``.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Dict, List, Optional

from te_dynamics.config import config_from_overrides, load_config
from te_dynamics.errors import ConfigurationError, SimulationAbort
from te_dynamics.model import run_simulations
from te_dynamics.output import TsvWriter
from te_dynamics.utils import format_elapsed, format_timestamp

logger = logging.getLogger(__name__)

# option dest → (section, key)
OPTION_MAP = {
    'n_replicates': ('simulation', 'n_replicates'),
    'n_generations': ('simulation', 'n_generations'),
    'seed': ('simulation', 'seed'),
    'independent_streams': ('simulation', 'independent_streams'),
    'n_diploids': ('population', 'n_diploids'),
    'n_sites_per_chr': ('population', 'n_sites_per_chr'),
    'init_tes_per_ind': ('population', 'init_tes_per_ind'),
    'total_map_dist': ('population', 'total_map_dist'),
    'prob_transp0': ('transposition', 'prob_transp0'),
    'k': ('transposition', 'k'),
    'prob_loss': ('transposition', 'prob_loss'),
    'zygote_selection': ('selection', 'zygote_selection'),
    'sel_mult': ('selection', 'sel_mult'),
    'sel_exp': ('selection', 'sel_exp'),
    'output': ('output', 'path'),
    'verbose': ('output', 'verbose'),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='te-dynamics',
        description="Simulate transposable elements dynamics in a diploid "
                    "population with the model of Charlesworth & Charlesworth (1983).",
    )
    parser.add_argument('--config', type=str, default=None,
                        help="base configuration YAML")
    parser.add_argument('-s', dest='n_replicates', type=int,
                        help="number of simulations (default=1)")
    parser.add_argument('-n', dest='n_diploids', type=int,
                        help="number of diploids (default=10)")
    parser.add_argument('-g', dest='n_generations', type=int,
                        help="number of generations per simulation (default=10)")
    parser.add_argument('-c', dest='n_sites_per_chr', type=int,
                        help="number of sites per chromosome (default=31)")
    parser.add_argument('-i', dest='init_tes_per_ind', type=float,
                        help="initial number of TEs per individual (default=10)")
    parser.add_argument('-t', dest='prob_transp0', type=float,
                        help="transposition probability per TE per generation (default=0.01)")
    parser.add_argument('-k', dest='k', type=float,
                        help="parameter for transposition regulation (default=0.05)")
    parser.add_argument('-l', dest='prob_loss', type=float,
                        help="loss probability per TE per generation (default=0.005)")
    parser.add_argument('-d', dest='total_map_dist', type=float,
                        help="total recombination map distance "
                             "(default=90; loose linkage 90, tight linkage 9)")
    parser.add_argument('-S', dest='zygote_selection', action='store_true', default=None,
                        help="apply zygote selection (eventually put k=0)")
    parser.add_argument('-m', dest='sel_mult', type=float,
                        help="selection multiplicator (only with -S, default=0.001)")
    parser.add_argument('-e', dest='sel_exp', type=float,
                        help="selection exponent (only with -S, default=1.5)")
    parser.add_argument('-r', dest='seed', type=int,
                        help="seed of the pseudo-random generator (default=1859)")
    parser.add_argument('-o', dest='output', type=str,
                        help="name of the output file (default=data.tsv)")
    parser.add_argument('-v', dest='verbose', type=int,
                        help="verbosity 0/1/2 (default=0)")
    parser.add_argument('--independent-streams', dest='independent_streams',
                        action='store_true', default=None,
                        help="give each simulation its own random stream")
    parser.add_argument('--plot', type=str, default=None,
                        help="save a PNG of the mean load trajectories")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict]:
    """Nested override dict holding only the options actually given."""
    overrides: Dict[str, Dict] = {}
    for dest, (section, key) in OPTION_MAP.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides.setdefault(section, {})[key] = value
    return overrides


def configure_logging(verbose: int) -> None:
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    overrides = overrides_from_args(args)

    try:
        if args.config is not None:
            config = load_config(args.config, overrides=overrides)
        else:
            config = config_from_overrides(overrides)
    except (ConfigurationError, FileNotFoundError) as exc:
        parser.error(str(exc))

    configure_logging(config.output.verbose)

    start = time.time()
    print(f"START: {format_timestamp(start)}")
    for key, value in sorted(vars(config).items()):
        logger.info("%s: %s", key, value)

    writer = TsvWriter(config.output.path)
    writer.open(config)
    try:
        results = run_simulations(config, writer=writer)
    except SimulationAbort as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        writer.close()

    if args.plot is not None:
        import matplotlib
        matplotlib.use("Agg")
        from te_dynamics.viz.loads import plot_mean_load_trajectories
        plot_mean_load_trajectories(results, save_path=args.plot)

    end = time.time()
    print(f"END: {format_timestamp(end)}")
    logger.info("elapsed time: %s", format_elapsed(end - start))
    return 0


if __name__ == "__main__":
    sys.exit(main())
