"""
comparison
==========

Batch comparison of motifs.  Each requested pair is aligned with the
sliding-window search and scored with the configured metric; pairs are
processed in chunks that are fanned out over a thread pool and write
disjoint slices of one output array.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numba import njit

from pfmalign.config import BatchInterrupted, ComparisonConfig, ConfigurationError, resolve_config
from pfmalign.metrics import compare_columns
from pfmalign.models import MotifSet, prepare_motifs
from pfmalign.search import compare_motif_pair

__all__ = [
    "CHECK_INTERVAL",
    "compare_all",
    "compare_columns",
    "compare_many",
    "compare_motif_set",
    "comparison_matrix",
]

CHECK_INTERVAL = 1000


@njit(cache=True, nogil=True)
def _compare_pairs_jit(
    data, offsets, ic_data, bkgs, nsites, index1, index2, out, start, stop, metric, strategy, minoverlap, rc, minic, posic, normalise
):
    """Score pairs ``start:stop`` into ``out``."""
    for k in range(start, stop):
        a = index1[k]
        b = index2[k]
        mot1 = data[offsets[a] : offsets[a + 1]]
        mot2 = data[offsets[b] : offsets[b + 1]]
        ic1 = ic_data[offsets[a] : offsets[a + 1]]
        ic2 = ic_data[offsets[b] : offsets[b + 1]]
        score, _, _, _ = compare_motif_pair(
            mot1,
            mot2,
            ic1,
            ic2,
            bkgs[a],
            bkgs[b],
            nsites[a],
            nsites[b],
            metric,
            strategy,
            minoverlap,
            rc,
            minic,
            posic,
            normalise,
        )
        out[k] = score


def _validate_pairs(index1: np.ndarray, index2: np.ndarray, num_motifs: int) -> None:
    logger = logging.getLogger(__name__)
    if index1.shape != index2.shape:
        raise ConfigurationError("pair index vectors differ in length")
    if index1.size == 0:
        return
    low = min(index1.min(), index2.min())
    high = max(index1.max(), index2.max())
    if low < 0 or high >= num_motifs:
        logger.error(f"Pair indices span [{low}, {high}] but only {num_motifs} motif(s) were given")
        raise ConfigurationError("pair index out of range")


def compare_motif_set(
    motif_set: MotifSet,
    index1: np.ndarray,
    index2: np.ndarray,
    config: ComparisonConfig,
    cancel: Optional[threading.Event] = None,
) -> np.ndarray:
    """
    Score pairs of an already prepared motif set.

    Parameters
    ----------
    motif_set : MotifSet
        Prepared motifs.
    index1, index2 : np.ndarray
        Indices of the motifs forming each pair.
    config : ComparisonConfig
        Comparison options.
    cancel : threading.Event, optional
        When set, chunks that have not started yet are skipped.

    Returns
    -------
    np.ndarray
        One score per pair.

    Raises
    ------
    BatchInterrupted
        If ``cancel`` was set before every chunk had started.
    """
    logger = logging.getLogger(__name__)

    index1 = np.ascontiguousarray(index1, dtype=np.int64)
    index2 = np.ascontiguousarray(index2, dtype=np.int64)
    _validate_pairs(index1, index2, motif_set.num_motifs)

    n_pairs = index1.size
    out = np.zeros(n_pairs, dtype=np.float64)
    if n_pairs == 0:
        return out

    data = motif_set.columns.data
    offsets = motif_set.columns.offsets
    ic_data = motif_set.ic.data
    bkgs = motif_set.backgrounds
    nsites = motif_set.nsites

    def run_chunk(start: int, stop: int) -> bool:
        if cancel is not None and cancel.is_set():
            logger.debug(f"Skipping pairs {start}-{stop}: batch cancelled")
            return False
        _compare_pairs_jit(
            data,
            offsets,
            ic_data,
            bkgs,
            nsites,
            index1,
            index2,
            out,
            start,
            stop,
            int(config.metric),
            int(config.aggregation),
            config.min_overlap,
            config.rc,
            config.min_mean_ic,
            config.min_position_ic,
            config.normalise,
        )
        logger.debug(f"Finished pairs {start}-{stop}")
        return True

    chunks = [(start, min(start + CHECK_INTERVAL, n_pairs)) for start in range(0, n_pairs, CHECK_INTERVAL)]
    logger.info(
        f"Comparing {n_pairs} pair(s) with {config.metric.name}/{config.aggregation.label} "
        f"in {len(chunks)} chunk(s) on {config.n_jobs} thread(s)"
    )

    completed = Parallel(n_jobs=config.n_jobs, backend="threading")(
        delayed(run_chunk)(start, stop) for start, stop in chunks
    )

    if not all(completed):
        done = sum(stop - start for (start, stop), ok in zip(chunks, completed) if ok)
        raise BatchInterrupted(f"Comparison interrupted after {done} of {n_pairs} pair(s)")

    logger.info(f"Compared {n_pairs} pair(s)")
    return out


def compare_many(
    motifs: Sequence,
    pairs,
    backgrounds: Optional[Sequence] = None,
    nsites: Optional[Sequence] = None,
    config: Optional[ComparisonConfig] = None,
    cancel: Optional[threading.Event] = None,
    **options,
) -> np.ndarray:
    """
    Compare selected pairs of motifs.

    Parameters
    ----------
    motifs : sequence of array-like
        Motifs of shape ``(alphabet, ncol)``.
    pairs : array-like
        Array of shape ``(n_pairs, 2)`` with motif indices.
    backgrounds : sequence of array-like, optional
        One background per motif, uniform when omitted.
    nsites : sequence of float, optional
        Number of sites per motif.
    config : ComparisonConfig, optional
        Options; alternatively pass them as keyword arguments.
    cancel : threading.Event, optional
        Cooperative cancellation flag.

    Returns
    -------
    np.ndarray
        Score of every pair, in input order.  Pairs with no admissible
        alignment score ``+inf`` for distances and ``-inf`` for similarities.
    """
    config = resolve_config(config, options)

    pairs = np.asarray(pairs, dtype=np.int64)
    if pairs.size == 0:
        pairs = pairs.reshape(0, 2)
    if pairs.ndim != 2 or pairs.shape[1] != 2:
        raise ConfigurationError(f"pairs must have shape (n, 2), got {pairs.shape}")

    motif_set = prepare_motifs(motifs, backgrounds, nsites, config)
    return compare_motif_set(motif_set, pairs[:, 0], pairs[:, 1], config, cancel)


def compare_all(
    motifs: Sequence,
    backgrounds: Optional[Sequence] = None,
    nsites: Optional[Sequence] = None,
    config: Optional[ComparisonConfig] = None,
    cancel: Optional[threading.Event] = None,
    **options,
) -> List[np.ndarray]:
    """
    Compare every motif against itself and every later motif.

    Returns
    -------
    list of np.ndarray
        Row ``i`` holds the scores for ``j = i .. n-1``.
    """
    config = resolve_config(config, options)
    motif_set = prepare_motifs(motifs, backgrounds, nsites, config)

    n = motif_set.num_motifs
    index1, index2 = np.triu_indices(n)
    flat = compare_motif_set(motif_set, index1, index2, config, cancel)

    rows = []
    start = 0
    for i in range(n):
        stop = start + n - i
        rows.append(flat[start:stop].copy())
        start = stop
    return rows


def comparison_matrix(scores: Sequence[np.ndarray], names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Mirror the triangular output of :func:`compare_all` into a square table.

    Parameters
    ----------
    scores : list of np.ndarray
        Rows as returned by :func:`compare_all`.
    names : sequence of str, optional
        Motif names used as index and columns.

    Returns
    -------
    pd.DataFrame
        Symmetric score matrix.
    """
    n = len(scores)
    if names is not None and len(names) != n:
        raise ConfigurationError(f"{len(names)} name(s) for {n} motif(s)")

    matrix = np.zeros((n, n), dtype=np.float64)
    for i, row in enumerate(scores):
        if len(row) != n - i:
            raise ConfigurationError(f"row {i} has {len(row)} score(s), expected {n - i}")
        matrix[i, i:] = row
        matrix[i:, i] = row

    labels = list(names) if names is not None else list(range(n))
    return pd.DataFrame(matrix, index=labels, columns=labels)
