"""
search
======

Sliding-window alignment search between two motifs.  Every register
``(i, j)`` of the equalized motifs is scored, optionally together with
the best register of the reverse complement of the second motif, and the
best candidate is returned according to the metric direction.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numba import njit

from pfmalign.config import ComparisonConfig
from pfmalign.functions import (
    count_aligned,
    equalize_columns,
    mask_low_ic_positions,
    mean_ic,
    reverse_complement,
)
from pfmalign.metrics import is_better, is_minimized, score_motifs, worst_score


@dataclass(frozen=True)
class AlignmentResult:
    """Best alignment of two motifs.

    Attributes
    ----------
    score : float
        Best score; ``+inf``/``-inf`` when every register was excluded.
    offset1 : int
        Column offset into the (equalized) first motif.
    offset2 : int
        Column offset into the (equalized) second motif.
    used_rc : bool
        Whether the reverse complement of the second motif won.
    """

    score: float
    offset1: int
    offset2: int
    used_rc: bool

    @property
    def shift(self) -> int:
        """Relative shift of the second motif against the first."""
        return self.offset1 - self.offset2


@njit(cache=True, nogil=True)
def score_register(
    mot1, mot2, ic1, ic2, i, j, width, tlen, bkg1, bkg2, nsites1, nsites2, metric, strategy, minic, posic, normalise
):
    """Score a single width-``width`` window starting at ``i`` in motif 1 and ``j`` in motif 2."""
    tmot1 = mot1[i : i + width].copy()
    tmot2 = mot2[j : j + width].copy()
    tic1 = ic1[i : i + width].copy()
    tic2 = ic2[j : j + width].copy()

    if posic > 0:
        mask_low_ic_positions(tmot1, tmot2, tic1, tic2, posic)

    if mean_ic(tic1) < minic or mean_ic(tic2) < minic:
        return worst_score(metric)

    aligned = count_aligned(tmot1, tmot2)
    if aligned == 0:
        return worst_score(metric)
    alignlen = aligned if normalise else tlen

    score, _ = score_motifs(tmot1, tmot2, bkg1, bkg2, nsites1, nsites2, metric, strategy)

    if is_minimized(metric):
        return score * tlen / alignlen
    return score * alignlen / tlen


@njit(cache=True, nogil=True)
def search_registers(
    mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, metric, strategy, minoverlap, minic, posic, normalise
):
    """
    Sweep all registers of two motifs.

    Returns
    -------
    tuple
        ``(score, i, j)`` for the first best register in row-major order.
    """
    tlen = max(mot1.shape[0], mot2.shape[0])

    emot1, emot2, eic1, eic2 = equalize_columns(mot1, mot2, ic1, ic2, minoverlap)

    width = min(emot1.shape[0], emot2.shape[0])
    fori = emot1.shape[0] - width + 1
    forj = emot2.shape[0] - width + 1

    best = worst_score(metric)
    best_i = 0
    best_j = 0

    for i in range(fori):
        for j in range(forj):
            score = score_register(
                emot1,
                emot2,
                eic1,
                eic2,
                i,
                j,
                width,
                tlen,
                bkg1,
                bkg2,
                nsites1,
                nsites2,
                metric,
                strategy,
                minic,
                posic,
                normalise,
            )
            if is_better(score, best, metric):
                best = score
                best_i = i
                best_j = j

    return best, best_i, best_j


@njit(cache=True, nogil=True)
def compare_motif_pair(
    mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, metric, strategy, minoverlap, rc, minic, posic, normalise
):
    """
    Best alignment of two motifs, optionally trying the reverse complement.

    Returns
    -------
    tuple
        ``(score, i, j, used_rc)``.  The reverse complement candidate is
        considered after all forward registers and only replaces the
        forward best on strict improvement.
    """
    score, i, j = search_registers(
        mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, metric, strategy, minoverlap, minic, posic, normalise
    )
    used_rc = False

    if rc:
        rc_mot2 = reverse_complement(mot2)
        rc_ic2 = ic2[::-1].copy()
        rc_score, rc_i, rc_j = search_registers(
            mot1, rc_mot2, ic1, rc_ic2, bkg1, bkg2, nsites1, nsites2, metric, strategy, minoverlap, minic, posic, normalise
        )
        if is_better(rc_score, score, metric):
            score = rc_score
            i = rc_i
            j = rc_j
            used_rc = True

    return score, i, j, used_rc


def align_pair(
    mot1: np.ndarray,
    mot2: np.ndarray,
    ic1: np.ndarray,
    ic2: np.ndarray,
    bkg1: np.ndarray,
    bkg2: np.ndarray,
    nsites1: float,
    nsites2: float,
    config: ComparisonConfig,
) -> AlignmentResult:
    """Run :func:`compare_motif_pair` for column-major motifs using a config object."""
    score, i, j, used_rc = compare_motif_pair(
        mot1,
        mot2,
        ic1,
        ic2,
        bkg1,
        bkg2,
        float(nsites1),
        float(nsites2),
        int(config.metric),
        int(config.aggregation),
        config.min_overlap,
        config.rc,
        config.min_mean_ic,
        config.min_position_ic,
        config.normalise,
    )
    return AlignmentResult(score=float(score), offset1=int(i), offset2=int(j), used_rc=bool(used_rc))
