"""
metrics
=======

Column comparison metrics and score aggregation.  Motifs handed to these
kernels are float64 arrays of shape ``(ncol, alphabet)``; a column whose
first entry is negative is padding and never contributes to a score.
"""

import math

import numpy as np
from numba import njit

from pfmalign.config import Aggregation, ConfigurationError, Metric

_EUCL = int(Metric.EUCL)
_KL = int(Metric.KL)
_HELL = int(Metric.HELL)
_IS = int(Metric.IS)
_SEUCL = int(Metric.SEUCL)
_MAN = int(Metric.MAN)
_PCC = int(Metric.PCC)
_SW = int(Metric.SW)
_ALLR = int(Metric.ALLR)
_BHAT = int(Metric.BHAT)
_ALLR_LL = int(Metric.ALLR_LL)

_SUM = int(Aggregation.SUM)
_AMEAN = int(Aggregation.AMEAN)
_GMEAN = int(Aggregation.GMEAN)
_MEDIAN = int(Aggregation.MEDIAN)

_SQRT2 = math.sqrt(2.0)


@njit(cache=True, nogil=True)
def is_minimized(metric):
    """Return True for distance metrics."""
    return metric <= _MAN


@njit(cache=True, nogil=True)
def worst_score(metric):
    """Sentinel for alignments that must never win."""
    if metric <= _MAN:
        return np.inf
    return -np.inf


@njit(cache=True, nogil=True)
def is_better(score, best, metric):
    """Strict improvement according to the metric direction."""
    if metric <= _MAN:
        return score < best
    return score > best


@njit(cache=True, nogil=True)
def good_columns(mot1, mot2):
    """Mask of columns holding real data in both motifs, and its count."""
    ncol = mot1.shape[0]
    good = np.zeros(ncol, dtype=np.bool_)
    n = 0
    for i in range(ncol):
        if mot1[i, 0] >= 0 and mot2[i, 0] >= 0:
            good[i] = True
            n += 1
    return good, n


@njit(cache=True, nogil=True)
def _pcc_column(a, b):
    nrow = a.shape[0]
    sab = 0.0
    sa = 0.0
    sb = 0.0
    saa = 0.0
    sbb = 0.0
    for j in range(nrow):
        sab += a[j] * b[j]
        sa += a[j]
        sb += b[j]
        saa += a[j] * a[j]
        sbb += b[j] * b[j]
    top = nrow * sab - sa * sb
    bot = (nrow * saa - sa * sa) * (nrow * sbb - sb * sb)
    # uniform columns give a zero denominator
    if bot <= 0.0:
        return 0.0
    return top / math.sqrt(bot)


@njit(cache=True, nogil=True)
def _allr_column(a, b, bkg1, bkg2, nsites1, nsites2):
    left = 0.0
    right = 0.0
    for j in range(a.shape[0]):
        left += (b[j] * nsites2) * math.log(a[j] / bkg1[j])
        right += (a[j] * nsites1) * math.log(b[j] / bkg2[j])
    return (left + right) / (nsites1 + nsites2)


@njit(cache=True, nogil=True)
def column_scores(mot1, mot2, bkg1, bkg2, nsites1, nsites2, metric):
    """
    Compute one score per aligned column.

    Parameters
    ----------
    mot1, mot2 : np.ndarray
        Motifs of identical shape ``(ncol, alphabet)``.
    bkg1, bkg2 : np.ndarray
        Backgrounds, only read by ALLR and ALLR_LL.
    nsites1, nsites2 : float
        Number of sites behind each motif, only read by ALLR and ALLR_LL.
    metric : int
        Metric code.

    Returns
    -------
    tuple
        ``(scores, good, n)``: per-column scores (0 for invalid columns),
        the validity mask and the number of valid columns.
    """
    ncol = mot1.shape[0]
    nrow = mot1.shape[1]
    good, n = good_columns(mot1, mot2)
    ans = np.zeros(ncol)

    for i in range(ncol):
        if not good[i]:
            continue
        a = mot1[i]
        b = mot2[i]
        acc = 0.0

        if metric == _EUCL:
            for j in range(nrow):
                acc += (a[j] - b[j]) ** 2
            acc = math.sqrt(acc)
        elif metric == _KL:
            for j in range(nrow):
                acc += a[j] * math.log(a[j] / b[j])
                acc += b[j] * math.log(b[j] / a[j])
            acc *= 0.5
        elif metric == _HELL:
            for j in range(nrow):
                acc += (math.sqrt(a[j]) - math.sqrt(b[j])) ** 2
            acc = math.sqrt(acc) / _SQRT2
        elif metric == _IS:
            for j in range(nrow):
                acc += a[j] / b[j] - math.log(a[j] / b[j]) - 1.0
        elif metric == _SEUCL:
            for j in range(nrow):
                acc += (a[j] - b[j]) ** 2
        elif metric == _MAN:
            for j in range(nrow):
                acc += abs(a[j] - b[j])
        elif metric == _PCC:
            acc = _pcc_column(a, b)
        elif metric == _SW:
            for j in range(nrow):
                acc += (a[j] - b[j]) ** 2
            acc = 2.0 - acc
        elif metric == _ALLR:
            acc = _allr_column(a, b, bkg1, bkg2, nsites1, nsites2)
        elif metric == _BHAT:
            for j in range(nrow):
                acc += math.sqrt(a[j] * b[j])
        elif metric == _ALLR_LL:
            acc = _allr_column(a, b, bkg1, bkg2, nsites1, nsites2)
            if acc < -2.0:
                acc = -2.0

        ans[i] = acc

    return ans, good, n


@njit(cache=True, nogil=True)
def aggregate_scores(scores, good, n, strategy):
    """Reduce per-column scores over the valid columns."""
    if strategy == _SUM:
        return scores.sum()

    if strategy == _AMEAN:
        if n == 0:
            return 0.0
        return scores.sum() / n

    if strategy == _GMEAN:
        log_sum = 0.0
        count = 0
        for i in range(scores.shape[0]):
            if good[i] and scores[i] > 0:
                log_sum += math.log(scores[i])
                count += 1
        if count == 0:
            return 0.0
        return math.exp(log_sum / count)

    # median
    kept = np.empty(n)
    k = 0
    for i in range(scores.shape[0]):
        if good[i]:
            kept[k] = scores[i]
            k += 1
    if k == 0:
        return 0.0
    kept = np.sort(kept[:k])
    half = k // 2
    if k % 2 == 0:
        return (kept[half - 1] + kept[half]) / 2.0
    return kept[half]


@njit(cache=True, nogil=True)
def score_motifs(mot1, mot2, bkg1, bkg2, nsites1, nsites2, metric, strategy):
    """Score two equal-width motifs; returns ``(score, n_valid_columns)``."""
    scores, good, n = column_scores(mot1, mot2, bkg1, bkg2, nsites1, nsites2, metric)
    return aggregate_scores(scores, good, n, strategy), n


def compare_columns(
    column1,
    column2,
    metric="PCC",
    background1=None,
    background2=None,
    nsites1: float = 100.0,
    nsites2: float = 100.0,
) -> float:
    """
    Compare two single motif columns with the ``sum`` strategy.

    Parameters
    ----------
    column1, column2 : array-like
        Symbol frequencies of one position each.
    metric : str or Metric
        Metric name.
    background1, background2 : array-like, optional
        Backgrounds, required for ALLR and ALLR_LL.
    nsites1, nsites2 : float
        Number of sites, must exceed 1 for ALLR and ALLR_LL.

    Returns
    -------
    float
        Column score.
    """
    resolved = Metric.from_name(metric)
    p1 = np.asarray(column1, dtype=np.float64)
    p2 = np.asarray(column2, dtype=np.float64)

    if p1.ndim != 1 or p1.size < 2:
        raise ConfigurationError("columns should have at least 2 entries")
    if p1.shape != p2.shape:
        raise ConfigurationError("both columns must be equal in size")

    if resolved in (Metric.ALLR, Metric.ALLR_LL):
        if background1 is None or background2 is None:
            raise ConfigurationError(f"{resolved.name} requires both backgrounds")
        b1 = np.asarray(background1, dtype=np.float64)
        b2 = np.asarray(background2, dtype=np.float64)
        if b1.shape != p1.shape or b2.shape != p1.shape:
            raise ConfigurationError("incorrect background vector length")
        if nsites1 <= 1 or nsites2 <= 1:
            raise ConfigurationError("nsites1/nsites2 should be greater than 1")
    else:
        b1 = np.full(p1.size, 1.0 / p1.size)
        b2 = b1

    score, _ = score_motifs(
        p1.reshape(1, -1),
        p2.reshape(1, -1),
        b1,
        b2,
        float(nsites1),
        float(nsites2),
        int(resolved),
        int(Aggregation.SUM),
    )
    return float(score)
