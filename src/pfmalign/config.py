"""
config
======

Configuration objects for motif comparison and merging.  Metric and
score-aggregation names are parsed once into closed integer enumerations
so that the compiled kernels never look at strings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal, Union


class ConfigurationError(ValueError):
    """Raised for invalid options or inputs before any comparison work starts."""


class BatchInterrupted(RuntimeError):
    """Raised when a batch of comparisons was cancelled before it finished."""


class Metric(IntEnum):
    """Column comparison metrics. Codes are shared with the numba kernels."""

    # distances
    EUCL = 1
    KL = 2
    HELL = 3
    IS = 4
    SEUCL = 5
    MAN = 6
    # similarities
    PCC = 7
    SW = 8
    ALLR = 9
    BHAT = 10
    ALLR_LL = 11

    @property
    def minimize(self) -> bool:
        """True when lower scores are better."""
        return self.value <= Metric.MAN.value

    @property
    def needs_positive(self) -> bool:
        """True when the metric takes logarithms of ratios."""
        return self in (Metric.KL, Metric.IS, Metric.ALLR, Metric.ALLR_LL)

    @property
    def worst(self) -> float:
        """Sentinel used for excluded alignments."""
        return float("inf") if self.minimize else float("-inf")

    @classmethod
    def from_name(cls, name: Union[str, Metric]) -> Metric:
        """Parse a metric name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        key = str(name).upper()
        if key not in cls.__members__:
            available = ", ".join(cls.__members__)
            raise ConfigurationError(f"Unknown metric: {name!r}. Available: {available}")
        return cls[key]


class Aggregation(IntEnum):
    """Strategies for reducing per-column scores to one value."""

    SUM = 1
    AMEAN = 2
    GMEAN = 3
    MEDIAN = 4

    @property
    def label(self) -> str:
        """Public name of the strategy."""
        return _AGGREGATION_LABELS[self]

    @classmethod
    def from_name(cls, name: Union[str, Aggregation]) -> Aggregation:
        """Parse an aggregation name such as ``'a.mean'``."""
        if isinstance(name, cls):
            return name
        for member, label in _AGGREGATION_LABELS.items():
            if label == name:
                return member
        available = ", ".join(_AGGREGATION_LABELS.values())
        raise ConfigurationError(f"Unknown score aggregation: {name!r}. Available: {available}")


_AGGREGATION_LABELS = {
    Aggregation.SUM: "sum",
    Aggregation.AMEAN: "a.mean",
    Aggregation.GMEAN: "g.mean",
    Aggregation.MEDIAN: "median",
}

ICMode = Literal["entropy", "raw-sum"]

IC_MODES = {"entropy": 1, "raw-sum": 2}


@dataclass(frozen=True)
class ComparisonConfig:
    """Immutable set of options shared by comparison and merging.

    Attributes
    ----------
    metric : Metric
        Column comparison metric.
    aggregation : Aggregation
        How per-column scores are reduced to one score.
    min_overlap : float
        Minimum number of overlapping columns, or a fraction of each
        motif's length when below 1.
    rc : bool
        Also try the reverse complement of the second motif.
    min_mean_ic : float
        Alignments whose mean IC falls below this value are excluded.
    min_position_ic : float
        Columns below this IC are masked out of an alignment.
    normalise : bool
        Rescale scores by the number of aligned columns instead of the
        longest motif length.
    relative_entropy : bool
        Compute IC relative to the background instead of uniform.
    ic_mode : str
        ``'entropy'`` or ``'raw-sum'``.
    nthreads : int
        Number of worker threads, ``-1`` for all cores.
    """

    metric: Metric = Metric.PCC
    aggregation: Aggregation = Aggregation.AMEAN
    min_overlap: float = 6.0
    rc: bool = False
    min_mean_ic: float = 0.25
    min_position_ic: float = 0.0
    normalise: bool = False
    relative_entropy: bool = False
    ic_mode: ICMode = "entropy"
    nthreads: int = 1

    @property
    def ic_code(self) -> int:
        """Integer IC mode used by the kernels."""
        return IC_MODES[self.ic_mode]

    @property
    def n_jobs(self) -> int:
        """Resolved number of worker threads."""
        if self.nthreads < 0:
            return os.cpu_count() or 1
        return self.nthreads

    def with_options(self, **options) -> ComparisonConfig:
        """Return a validated copy with some options replaced."""
        current = {
            "metric": self.metric,
            "aggregation": self.aggregation,
            "min_overlap": self.min_overlap,
            "rc": self.rc,
            "min_mean_ic": self.min_mean_ic,
            "min_position_ic": self.min_position_ic,
            "normalise": self.normalise,
            "relative_entropy": self.relative_entropy,
            "ic_mode": self.ic_mode,
            "nthreads": self.nthreads,
        }
        unknown = set(options) - set(current)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {sorted(unknown)}")
        current.update(options)
        return create_comparison_config(**current)


def create_comparison_config(
    metric: Union[str, Metric] = "PCC",
    aggregation: Union[str, Aggregation] = "a.mean",
    min_overlap: float = 6,
    rc: bool = False,
    min_mean_ic: float = 0.25,
    min_position_ic: float = 0.0,
    normalise: bool = False,
    relative_entropy: bool = False,
    ic_mode: str = "entropy",
    nthreads: int = 1,
) -> ComparisonConfig:
    """Build a validated ComparisonConfig."""
    logger = logging.getLogger(__name__)

    resolved_metric = Metric.from_name(metric)
    resolved_aggregation = Aggregation.from_name(aggregation)

    if ic_mode not in IC_MODES:
        raise ConfigurationError(f"Unknown IC mode: {ic_mode!r}. Available: {', '.join(IC_MODES)}")
    if min_mean_ic < 0:
        logger.error(f"Negative min_mean_ic: {min_mean_ic}")
        raise ConfigurationError("min_mean_ic must be non-negative")
    if min_position_ic < 0:
        logger.error(f"Negative min_position_ic: {min_position_ic}")
        raise ConfigurationError("min_position_ic must be non-negative")
    if nthreads == 0:
        raise ConfigurationError("nthreads must be a positive number or -1")

    if min_overlap < 0:
        logger.debug(f"min_overlap {min_overlap} < 0, using 1")
        min_overlap = 1

    return ComparisonConfig(
        metric=resolved_metric,
        aggregation=resolved_aggregation,
        min_overlap=float(min_overlap),
        rc=bool(rc),
        min_mean_ic=float(min_mean_ic),
        min_position_ic=float(min_position_ic),
        normalise=bool(normalise),
        relative_entropy=bool(relative_entropy),
        ic_mode=ic_mode,
        nthreads=int(nthreads),
    )


def resolve_config(config: ComparisonConfig | None, options: dict) -> ComparisonConfig:
    """Combine an optional config object with keyword options."""
    if config is not None and options:
        raise ConfigurationError("Use either 'config' or option kwargs, not both.")
    if config is None:
        return create_comparison_config(**options)
    return config
