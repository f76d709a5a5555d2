"""
merge
=====

Merging and joint alignment of motifs.

Two motifs are merged by aligning them, padding the shorter one into the
frame of the longer one, dropping columns that are padding in both and
averaging the overlapping columns.  Several motifs are merged by folding
them into an accumulator in input order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from pfmalign.config import ComparisonConfig, resolve_config
from pfmalign.functions import (
    count_left_padding,
    equalize_columns,
    merge_backgrounds,
    merge_columns,
    motif_ic,
    pad_columns,
    padding_to_zero,
    reverse_complement,
    trim_padding,
)
from pfmalign.models import from_columns, prepare_motifs
from pfmalign.search import align_pair


def align_into_frame(mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, config: ComparisonConfig):
    """
    Put two column-major motifs into a shared frame at their best register.

    Returns
    -------
    tuple
        ``(frame1, frame2, used_rc)``: equal-width motifs with padding
        columns where a motif has no data, trimmed of columns that are
        padding in both.  ``frame2`` is reverse complemented when that
        orientation won.
    """
    result = align_pair(mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, config)
    if result.used_rc:
        mot2 = reverse_complement(mot2)
        ic2 = ic2[::-1].copy()

    emot1, emot2, eic1, eic2 = equalize_columns(mot1, mot2, ic1, ic2, config.min_overlap)

    shift = result.shift
    if emot1.shape[0] > emot2.shape[0]:
        emot2, eic2 = pad_columns(emot2, eic2, shift, emot1.shape[0])
    elif emot2.shape[0] > emot1.shape[0]:
        emot1, eic1 = pad_columns(emot1, eic1, -shift, emot2.shape[0])

    frame1, frame2 = trim_padding(emot1, emot2)
    return frame1, frame2, result.used_rc


def merge_motif_pair(
    mot1: np.ndarray,
    mot2: np.ndarray,
    ic1: np.ndarray,
    ic2: np.ndarray,
    bkg1: np.ndarray,
    bkg2: np.ndarray,
    nsites1: float,
    nsites2: float,
    weight: float,
    config: ComparisonConfig,
) -> np.ndarray:
    """
    Merge two column-major motifs.

    Overlapping columns become ``(a * weight + b) / (weight + 1)``; columns
    covered by one motif only are copied.
    """
    frame1, frame2, _ = align_into_frame(mot1, mot2, ic1, ic2, bkg1, bkg2, nsites1, nsites2, config)
    return merge_columns(frame1, frame2, float(weight))


def merge_many(
    motifs: Sequence,
    backgrounds: Optional[Sequence] = None,
    nsites: Optional[Sequence] = None,
    config: Optional[ComparisonConfig] = None,
    **options,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Merge motifs into one.

    Motifs are folded in order into an accumulator that starts as the
    first motif with weight 1.  After each fold the weight grows by one,
    the accumulator background becomes the weighted background average and
    its IC is recomputed from that background.  IC is always computed in
    the entropy mode, whatever ``ic_mode`` the config names.

    Parameters
    ----------
    motifs : sequence of array-like
        Motifs of shape ``(alphabet, ncol)``.
    backgrounds : sequence of array-like, optional
        One background per motif, uniform when omitted.
    nsites : sequence of float, optional
        Number of sites per motif.
    config : ComparisonConfig, optional
        Options; alternatively pass them as keyword arguments.

    Returns
    -------
    tuple
        ``(motif, background)`` with the motif in ``(alphabet, ncol)``
        orientation.
    """
    logger = logging.getLogger(__name__)
    config = _entropy_config(resolve_config(config, options))
    motif_set = prepare_motifs(motifs, backgrounds, nsites, config)

    merged = motif_set.motif(0).copy()
    merged_ic = motif_set.motif_ic(0).copy()
    merged_bkg = motif_set.backgrounds[0].copy()
    merged_nsites = float(motif_set.nsites[0])
    weight = 1

    for k in range(1, motif_set.num_motifs):
        merged = merge_motif_pair(
            merged,
            motif_set.motif(k),
            merged_ic,
            motif_set.motif_ic(k),
            merged_bkg,
            motif_set.backgrounds[k],
            merged_nsites,
            float(motif_set.nsites[k]),
            weight,
            config,
        )
        merged_bkg = merge_backgrounds(merged_bkg, motif_set.backgrounds[k], weight)
        merged_ic = motif_ic(merged, merged_bkg, config.ic_code, config.relative_entropy)
        merged_nsites += float(motif_set.nsites[k])
        weight += 1

    logger.info(f"Merged {motif_set.num_motifs} motif(s) into {merged.shape[0]} column(s)")
    return from_columns(merged), merged_bkg


def align_motifs(
    motifs: Sequence,
    backgrounds: Optional[Sequence] = None,
    nsites: Optional[Sequence] = None,
    config: Optional[ComparisonConfig] = None,
    **options,
) -> Tuple[List[np.ndarray], List[bool]]:
    """
    Align every motif to the first one in a common column frame.

    Each motif is placed at its best register against the first motif
    (reverse complemented where that wins) and left-padded so that
    aligned columns share an index.  Padding is returned as zeros.

    Returns
    -------
    tuple
        ``(aligned, used_rc)``: motifs in ``(alphabet, ncol)`` orientation
        and one flag per motif (always False for the first).
    """
    config = _entropy_config(resolve_config(config, options))
    motif_set = prepare_motifs(motifs, backgrounds, nsites, config)

    first = motif_set.motif(0)
    first_ic = motif_set.motif_ic(0)
    frames = []
    lefts = []
    used_rc = [False]

    for k in range(1, motif_set.num_motifs):
        frame_first, frame_k, flipped = align_into_frame(
            first,
            motif_set.motif(k),
            first_ic,
            motif_set.motif_ic(k),
            motif_set.backgrounds[0],
            motif_set.backgrounds[k],
            float(motif_set.nsites[0]),
            float(motif_set.nsites[k]),
            config,
        )
        frames.append(frame_k)
        lefts.append(count_left_padding(frame_first))
        used_rc.append(bool(flipped))

    maxadd = max(lefts, default=0)
    aligned = [_shift_right(first, maxadd)]
    for frame, left in zip(frames, lefts):
        aligned.append(_shift_right(frame, maxadd - left))

    return [from_columns(padding_to_zero(motif)) for motif in aligned], used_rc


def _shift_right(motif: np.ndarray, left: int) -> np.ndarray:
    padded, _ = pad_columns(motif, np.zeros(motif.shape[0]), left, motif.shape[0] + left)
    return padded


def _entropy_config(config: ComparisonConfig) -> ComparisonConfig:
    """Merging and joint alignment always weigh columns by entropy IC."""
    if config.ic_mode == "entropy":
        return config
    return config.with_options(ic_mode="entropy")
