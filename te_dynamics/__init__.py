"""te_dynamics: transposable-element dynamics in a diploid population.

Individual-based implementation of the Charlesworth & Charlesworth (1983)
model:
  - TEs accumulate by (optionally self-regulated) transposition
  - TEs are removed by stochastic excision (loss)
  - Crossing-over reshuffles TEs between homologues at meiosis
  - Zygote selection against TE load (fitness = 1 - m * n^t)
  - Constant-size, non-overlapping generations (Wright-Fisher)

References:
  - Charlesworth B. & Charlesworth D. (1983) The population dynamics of
    transposable elements. Genetical Research 42:1-27.
"""

__version__ = "0.1.0"
