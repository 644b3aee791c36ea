"""te_dynamics visualization library.

Modules:
  - style: Dark theme colours and helpers
  - loads: TE load trajectories, distributions and per-locus frequencies
"""

from te_dynamics.viz.style import (  # noqa: F401
    DARK_BG,
    DARK_PANEL,
    EVENT_COLORS,
    GRID_COLOR,
    REPLICATE_COLORS,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from te_dynamics.viz.loads import (  # noqa: F401
    plot_event_counts,
    plot_load_distribution,
    plot_locus_frequencies,
    plot_mean_load_trajectories,
)
