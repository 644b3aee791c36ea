"""Exception hierarchy for te_dynamics.

Two families:
  - ConfigurationError: bad input detected before a replicate starts
    (parameter ranges, mismatched sequence or population sizes).
  - SimulationAbort: the stochastic bookkeeping no longer matches the
    genome state during a run. Never repaired or retried; the replicate
    driver marks the replicate as aborted and stops the whole run.
"""


class TEDynamicsError(Exception):
    """Base class for every error raised by te_dynamics."""


class ConfigurationError(TEDynamicsError, ValueError):
    """Invalid parameters or mismatched collection sizes."""


class SimulationAbort(TEDynamicsError, RuntimeError):
    """Fatal invariant violation discovered while simulating."""


class LoadMismatchError(SimulationAbort):
    """TE count after loss/transposition differs from the expected count."""

    def __init__(self, operation: str, observed: int, expected: int):
        self.operation = operation
        self.observed = observed
        self.expected = expected
        super().__init__(
            f"bad number of TEs after {operation} ({observed}!={expected})"
        )


class SaturationError(SimulationAbort):
    """Transposition would leave no empty site."""


class EmptyGenomeError(SimulationAbort):
    """Loss requested on a chromosome that carries no TE."""


class RetryBudgetExceeded(SimulationAbort):
    """A sampling loop ran out of attempts (e.g. near-zero viability)."""
