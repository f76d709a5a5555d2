"""
pvalue
======

P-values for comparison scores from a table of precomputed null
distributions.  The table is a DataFrame with columns ``subject``,
``target``, ``paramA``, ``paramB`` and ``distribution``; a row describes
the null distribution of scores between motifs of ``subject`` and
``target`` columns (``subject <= target``).
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats

from pfmalign.config import BatchInterrupted, ConfigurationError, Metric

TABLE_COLUMNS = ("subject", "target", "paramA", "paramB", "distribution")


class DistributionRegistry:
    """Registry for null distribution families using decorator pattern."""

    def __init__(self):
        """Initialize registry state."""
        self._families: Dict[str, type] = {}

    def register(self, key: str):
        """Decorator to register a distribution family class."""

        def decorator(family_cls):
            """Store a class in the registry."""
            self._families[key] = family_cls
            logging.debug(f"Registered distribution: {key} -> {family_cls.__name__}")
            return family_cls

        return decorator

    def get(self, key: str) -> type:
        """Get distribution family class by key."""
        if key not in self._families:
            available = list(self._families.keys())
            raise ConfigurationError(f"Distribution '{key}' not found. Available: {available}")
        return self._families[key]

    def __contains__(self, key: str) -> bool:
        return key in self._families


registry = DistributionRegistry()


@registry.register("normal")
class NormalDistribution:
    """Normal null with ``paramA`` as mean and ``paramB`` as standard deviation."""

    @staticmethod
    def freeze(param_a: float, param_b: float):
        return stats.norm(loc=param_a, scale=param_b)


@registry.register("logistic")
class LogisticDistribution:
    """Logistic null with ``paramA`` as location and ``paramB`` as scale."""

    @staticmethod
    def freeze(param_a: float, param_b: float):
        return stats.logistic(loc=param_a, scale=param_b)


@registry.register("weibull")
class WeibullDistribution:
    """Weibull null with ``paramA`` as shape and ``paramB`` as scale."""

    @staticmethod
    def freeze(param_a: float, param_b: float):
        return stats.weibull_min(c=param_a, scale=param_b)


def tail_probability(score: float, row: dict, lower_tail: bool, log_p: bool) -> float:
    """Probability of a score at least as extreme as ``score`` under one table row."""
    dist = registry.get(row["distribution"]).freeze(float(row["paramA"]), float(row["paramB"]))
    if lower_tail:
        return float(dist.logcdf(score) if log_p else dist.cdf(score))
    return float(dist.logsf(score) if log_p else dist.sf(score))


def validate_table(table: pd.DataFrame) -> None:
    """Check the table layout and its distribution names."""
    logger = logging.getLogger(__name__)
    missing = [column for column in TABLE_COLUMNS if column not in table.columns]
    if missing:
        logger.error(f"P-value table lacks column(s): {missing}")
        raise ConfigurationError(f"P-value table is missing columns: {missing}")
    if table.empty:
        raise ConfigurationError("empty p-value table")
    for name in table["distribution"].unique():
        registry.get(name)


def motif_pvalues(
    ncols,
    scores,
    index1,
    index2,
    table: pd.DataFrame,
    metric,
    log_p: bool = False,
    cancel: Optional[threading.Event] = None,
) -> np.ndarray:
    """
    Look up p-values for comparison scores.

    Parameters
    ----------
    ncols : array-like
        Number of columns of every motif.
    scores : array-like
        Scores of the compared pairs.
    index1, index2 : array-like
        Motif indices of each pair.
    table : pd.DataFrame
        Null distribution parameters by motif size.
    metric : str or Metric
        Metric that produced the scores; distances use the lower tail,
        similarities the upper tail.
    log_p : bool
        Return natural log probabilities.
    cancel : threading.Event, optional
        Checked every 1000 scores.

    Returns
    -------
    np.ndarray
        P-values; 0 where the score is infinite or no table row matches.
    """
    logger = logging.getLogger(__name__)

    resolved = Metric.from_name(metric)
    ncols = np.asarray(ncols, dtype=np.int64)
    scores = np.asarray(scores, dtype=np.float64)
    index1 = np.asarray(index1, dtype=np.int64)
    index2 = np.asarray(index2, dtype=np.int64)

    if not (scores.shape == index1.shape == index2.shape):
        raise ConfigurationError("scores and pair indices differ in length")
    if scores.size and (min(index1.min(), index2.min()) < 0 or max(index1.max(), index2.max()) >= ncols.size):
        raise ConfigurationError("pair index out of range")
    validate_table(table)

    rows = {
        (int(subject), int(target)): row
        for subject, target, row in zip(table["subject"], table["target"], table.to_dict("records"))
    }
    subject_min, subject_max = int(table["subject"].min()), int(table["subject"].max())
    target_min, target_max = int(table["target"].min()), int(table["target"].max())

    out = np.zeros(scores.size, dtype=np.float64)
    missed = 0
    for k in range(scores.size):
        if cancel is not None and k % 1000 == 0 and cancel.is_set():
            raise BatchInterrupted(f"P-value lookup interrupted after {k} of {scores.size} score(s)")

        score = scores[k]
        if np.isinf(score):
            continue

        len1 = int(ncols[index1[k]])
        len2 = int(ncols[index2[k]])
        n1 = min(max(min(len1, len2), subject_min), subject_max)
        n2 = min(max(max(len1, len2), target_min), target_max)

        row = None
        while n1 <= subject_max and n2 <= target_max:
            row = rows.get((n1, n2))
            if row is not None:
                break
            n1 += 1
            n2 += 1

        if row is None:
            missed += 1
            logger.debug(f"No null distribution for motif sizes {len1}/{len2}")
            continue
        out[k] = tail_probability(score, row, resolved.minimize, log_p)

    if missed:
        logger.debug(f"{missed} score(s) had no matching table row")
    return out
