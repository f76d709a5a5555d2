"""
models
======

Immutable containers for batches of motifs prepared for comparison.

Motifs are accepted in the ``(alphabet, ncol)`` orientation (rows are
symbols, columns are positions) and stored column-major, smoothed for the
selected metric and paired with their per-column information content.
Preparation is a separate pass so the comparison phase only reads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Optional, Sequence

import numpy as np

from pfmalign.config import ComparisonConfig, ConfigurationError
from pfmalign.functions import fix_mot_bkg_zeros, motif_ic
from pfmalign.ragged import RaggedData, ragged_from_list

DEFAULT_NSITES = 100.0


@dataclass(frozen=True)
class MotifSet:
    """Prepared motifs, read-only during comparison.

    Attributes
    ----------
    columns : RaggedData
        Column-major motifs, ``data`` has shape ``(total_columns, alphabet)``.
    ic : RaggedData
        Per-column information content sharing the offsets of ``columns``.
    backgrounds : np.ndarray
        Array of shape ``(n_motifs, alphabet)``.
    nsites : np.ndarray
        Number of sites behind each motif.
    """

    columns: RaggedData = dc_field(hash=False)
    ic: RaggedData = dc_field(hash=False)
    backgrounds: np.ndarray = dc_field(hash=False)
    nsites: np.ndarray = dc_field(hash=False)

    @property
    def num_motifs(self) -> int:
        """Number of motifs in the set."""
        return self.columns.num_items

    @property
    def alphabet_size(self) -> int:
        """Number of symbols per column."""
        return self.backgrounds.shape[1]

    def motif(self, i: int) -> np.ndarray:
        """Column-major matrix of motif ``i``."""
        return self.columns.get_slice(i)

    def motif_ic(self, i: int) -> np.ndarray:
        """IC vector of motif ``i``."""
        return self.ic.get_slice(i)

    def ncols(self) -> np.ndarray:
        """Number of columns of every motif."""
        return self.columns.lengths()


def to_columns(motif) -> np.ndarray:
    """Convert an ``(alphabet, ncol)`` motif into a column-major float64 copy."""
    return np.ascontiguousarray(np.asarray(motif, dtype=np.float64).T)


def from_columns(motif: np.ndarray) -> np.ndarray:
    """Convert a column-major motif back to ``(alphabet, ncol)``."""
    return np.ascontiguousarray(motif.T)


def uniform_background(alphabet_size: int) -> np.ndarray:
    """Uniform background over ``alphabet_size`` symbols."""
    return np.full(alphabet_size, 1.0 / alphabet_size)


def validate_inputs(motifs: Sequence, backgrounds: Optional[Sequence], nsites: Optional[Sequence]) -> None:
    """Check batch shapes; raises ConfigurationError before any work starts."""
    logger = logging.getLogger(__name__)

    if len(motifs) == 0:
        raise ConfigurationError("empty motif list")
    if backgrounds is not None:
        if len(backgrounds) == 0:
            raise ConfigurationError("empty background list")
        if len(backgrounds) != len(motifs):
            logger.error(f"{len(motifs)} motifs but {len(backgrounds)} backgrounds")
            raise ConfigurationError("different motif and background lengths")
    if nsites is not None and len(nsites) != len(motifs):
        raise ConfigurationError("different motif and nsites lengths")

    alphabet = None
    for i, motif in enumerate(motifs):
        shape = np.shape(motif)
        if len(shape) != 2:
            raise ConfigurationError(f"motif {i} is not a 2-D matrix (shape {shape})")
        if shape[1] == 0:
            raise ConfigurationError(f"encountered an empty motif at index {i}")
        if alphabet is None:
            alphabet = shape[0]
        elif shape[0] != alphabet:
            raise ConfigurationError(f"motif {i} has {shape[0]} symbols, expected {alphabet}")
        if backgrounds is not None and np.size(backgrounds[i]) != shape[0]:
            raise ConfigurationError(f"background {i} length does not match the motif alphabet")


def prepare_motifs(
    motifs: Sequence,
    backgrounds: Optional[Sequence] = None,
    nsites: Optional[Sequence] = None,
    config: Optional[ComparisonConfig] = None,
) -> MotifSet:
    """
    Validate, smooth and precompute IC for a batch of motifs.

    Parameters
    ----------
    motifs : sequence of array-like
        Motifs of shape ``(alphabet, ncol)``.
    backgrounds : sequence of array-like, optional
        One background per motif; uniform when omitted.
    nsites : sequence of float, optional
        Number of sites per motif; 100 when omitted.
    config : ComparisonConfig, optional
        Selects the metric (for zero smoothing) and the IC options.

    Returns
    -------
    MotifSet
        Prepared batch.
    """
    config = config or ComparisonConfig()
    validate_inputs(motifs, backgrounds, nsites)

    alphabet = np.shape(motifs[0])[0]
    columns = []
    fixed_bkgs = []
    ics = []
    for i, motif in enumerate(motifs):
        bkg = uniform_background(alphabet) if backgrounds is None else backgrounds[i]
        mot, bkg = fix_mot_bkg_zeros(to_columns(motif), bkg, config.metric)
        columns.append(mot)
        fixed_bkgs.append(bkg)
        ics.append(motif_ic(mot, bkg, config.ic_code, config.relative_entropy))

    if nsites is None:
        nsites_arr = np.full(len(motifs), DEFAULT_NSITES)
    else:
        nsites_arr = np.asarray(nsites, dtype=np.float64)

    logger = logging.getLogger(__name__)
    logger.debug(f"Prepared {len(motifs)} motif(s) with alphabet size {alphabet} for {config.metric.name}")

    return MotifSet(
        columns=ragged_from_list(columns, dtype=np.float64),
        ic=ragged_from_list(ics, dtype=np.float64),
        backgrounds=np.ascontiguousarray(np.vstack(fixed_bkgs)),
        nsites=nsites_arr,
    )
