"""
pfmalign
==================

This package compares, aligns and merges position frequency matrices
(PFMs).  Every pair of motifs is aligned with a sliding-window search over
all column registers (optionally against the reverse complement of the
second motif), scored with one of eleven column metrics and reduced to a
single value by a score aggregation strategy.

The top level modules expose the following key components:

``config``
    Metric and aggregation enumerations, the immutable
    :class:`ComparisonConfig` and the package exceptions.

``metrics``
    Column metrics and score aggregation kernels.

``functions``
    Information content, reverse complement, padding and column merge
    helpers.

``search``
    The alignment search over registers of two motifs.

``models``
    :class:`MotifSet`, the prepared read-only batch used by comparisons.

``comparison``
    Batch comparison of motif pairs on a thread pool.

``merge``
    Merging several motifs into one and aligning motifs to a reference.

``pvalue``
    P-values from a table of precomputed null distributions.

Motifs are passed as arrays of shape ``(alphabet, ncol)``.
"""

from pfmalign.comparison import compare_all, compare_columns, compare_many, comparison_matrix
from pfmalign.config import (
    Aggregation,
    BatchInterrupted,
    ComparisonConfig,
    ConfigurationError,
    Metric,
    create_comparison_config,
)
from pfmalign.merge import align_motifs, merge_many
from pfmalign.pvalue import motif_pvalues

__all__ = [
    "Aggregation",
    "BatchInterrupted",
    "ComparisonConfig",
    "ConfigurationError",
    "Metric",
    "align_motifs",
    "compare_all",
    "compare_columns",
    "compare_many",
    "comparison_matrix",
    "create_comparison_config",
    "merge_many",
    "motif_pvalues",
]
