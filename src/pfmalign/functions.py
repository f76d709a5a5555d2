import math

import numpy as np
from numba import njit

from pfmalign.config import Metric

MOTIF_PSEUDOCOUNT = 0.01
BACKGROUND_PSEUDOCOUNT = 0.01


@njit(cache=True, nogil=True)
def position_ic(column, bkg, mode, relative):
    """Information content of one column in bits (mode 1: entropy, 2: raw sum)."""
    if mode == 2:
        return column.sum()

    total = 0.0
    if relative:
        for i in range(column.shape[0]):
            # 0 * log(0) is taken as 0
            if column[i] <= 0 or bkg[i] <= 0:
                continue
            contribution = column[i] * math.log2(column[i] / bkg[i])
            if contribution > 0:
                total += contribution
        return total

    for i in range(column.shape[0]):
        if column[i] > 0:
            total -= column[i] * math.log2(column[i])
    return math.log2(column.shape[0]) - total


@njit(cache=True, nogil=True)
def motif_ic(motif, bkg, mode, relative):
    """Per-column information content of a motif."""
    out = np.empty(motif.shape[0])
    for i in range(motif.shape[0]):
        out[i] = position_ic(motif[i], bkg, mode, relative)
    return out


@njit(cache=True, nogil=True)
def mean_ic(ic):
    """Mean IC over non-excluded (>= 0) columns."""
    total = 0.0
    counter = 0
    for i in range(ic.shape[0]):
        if ic[i] >= 0:
            total += ic[i]
            counter += 1
    if counter == 0:
        return 0.0
    return total / counter


def fix_mot_bkg_zeros(motif: np.ndarray, bkg: np.ndarray, metric: Metric) -> tuple[np.ndarray, np.ndarray]:
    """
    Smooth a motif and its background for metrics that take log ratios.

    Returns new arrays; the inputs are never modified.  The motif gets a
    pseudocount in every cell, the background only when it holds an exact
    zero.
    """
    motif = np.array(motif, dtype=np.float64, copy=True)
    bkg = np.array(bkg, dtype=np.float64, copy=True)
    if not Metric.from_name(metric).needs_positive:
        return motif, bkg
    motif += MOTIF_PSEUDOCOUNT
    if np.any(bkg == 0):
        bkg += BACKGROUND_PSEUDOCOUNT / bkg.size
    return motif, bkg


@njit(cache=True, nogil=True)
def reverse_complement(motif):
    """Reverse column order and symbol order within each column."""
    return motif[::-1, ::-1].copy()


@njit(cache=True, nogil=True)
def pad_columns(motif, ic, left, total):
    """Place ``motif`` at column ``left`` of a padding-filled motif of ``total`` columns."""
    ncol = motif.shape[0]
    out = np.full((total, motif.shape[1]), -1.0)
    out_ic = np.full(total, -1.0)
    out[left : left + ncol] = motif
    out_ic[left : left + ncol] = ic
    return out, out_ic


@njit(cache=True, nogil=True)
def _overlaps(minoverlap, ncol1, ncol2):
    if minoverlap < 1:
        return int(minoverlap * ncol1), int(minoverlap * ncol2)
    return int(minoverlap), int(minoverlap)


@njit(cache=True, nogil=True)
def equalize_columns(mot1, mot2, ic1, ic2, minoverlap):
    """
    Pad the shorter motif so every register meets the overlap requirement.

    Returns copies ``(mot1, mot2, ic1, ic2)``.  Padding is added in equal
    measure on both sides of one motif only; if the overlap already holds
    for either motif nothing is padded.
    """
    ncol1 = mot1.shape[0]
    ncol2 = mot2.shape[0]
    overlap1, overlap2 = _overlaps(minoverlap, ncol1, ncol2)

    add1 = 0 if overlap1 > ncol2 else ncol2 - overlap1
    add2 = 0 if overlap2 > ncol1 else ncol1 - overlap2

    if add1 == 0 or add2 == 0:
        return mot1.copy(), mot2.copy(), ic1.copy(), ic2.copy()

    if ncol2 > ncol1:
        new1, new_ic1 = pad_columns(mot1, ic1, add1, ncol1 + 2 * add1)
        return new1, mot2.copy(), new_ic1, ic2.copy()

    new2, new_ic2 = pad_columns(mot2, ic2, add2, ncol2 + 2 * add2)
    return mot1.copy(), new2, ic1.copy(), new_ic2


@njit(cache=True, nogil=True)
def count_aligned(mot1, mot2):
    """Number of columns holding real data in both motifs."""
    out = 0
    for i in range(mot1.shape[0]):
        if mot1[i, 0] >= 0 and mot2[i, 0] >= 0:
            out += 1
    return out


@njit(cache=True, nogil=True)
def mask_low_ic_positions(mot1, mot2, ic1, ic2, posic):
    """Turn aligned column pairs into padding where either IC is below ``posic`` (in place)."""
    for i in range(mot1.shape[0]):
        if ic1[i] < posic or ic2[i] < posic:
            mot1[i, :] = -1.0
            mot2[i, :] = -1.0
            ic1[i] = -1.0
            ic2[i] = -1.0


@njit(cache=True, nogil=True)
def trim_padding(mot1, mot2):
    """Drop leading and trailing columns that are padding in both motifs."""
    ncol = mot1.shape[0]
    left = 0
    while left < ncol and mot1[left, 0] < 0 and mot2[left, 0] < 0:
        left += 1
    right = ncol
    while right > left and mot1[right - 1, 0] < 0 and mot2[right - 1, 0] < 0:
        right -= 1
    if right == left:
        return mot1.copy(), mot2.copy()
    return mot1[left:right].copy(), mot2[left:right].copy()


@njit(cache=True, nogil=True)
def merge_columns(mot1, mot2, weight):
    """Weighted column-wise average of two aligned motifs of equal width."""
    ncol = mot1.shape[0]
    out = np.empty_like(mot1)
    k = 0
    for i in range(ncol):
        real1 = mot1[i, 0] >= 0
        real2 = mot2[i, 0] >= 0
        if real1 and real2:
            out[k] = (mot1[i] * weight + mot2[i]) / (weight + 1.0)
        elif real1:
            out[k] = mot1[i]
        elif real2:
            out[k] = mot2[i]
        else:
            continue
        k += 1
    return out[:k].copy()


def merge_backgrounds(bkg1: np.ndarray, bkg2: np.ndarray, weight: int) -> np.ndarray:
    """Weighted average of two backgrounds."""
    bkg1 = np.asarray(bkg1, dtype=np.float64)
    bkg2 = np.asarray(bkg2, dtype=np.float64)
    return (bkg1 * weight + bkg2) / (weight + 1.0)


def count_left_padding(motif: np.ndarray) -> int:
    """Number of padding columns before the first real one."""
    real = np.flatnonzero(motif[:, 0] >= 0)
    return int(real[0]) if real.size else motif.shape[0]


def padding_to_zero(motif: np.ndarray) -> np.ndarray:
    """Replace padding values by zeros."""
    return np.where(motif < 0, 0.0, motif)
