"""
Integration tests for the public pfmalign operations.

These tests run complete comparisons, merges and alignments through the
package API and check their results against values known in closed form.
"""

import threading

import numpy as np
import pytest

from pfmalign import (
    BatchInterrupted,
    ConfigurationError,
    align_motifs,
    compare_all,
    compare_columns,
    compare_many,
    comparison_matrix,
    create_comparison_config,
    merge_many,
)
from pfmalign.comparison import CHECK_INTERVAL
from pfmalign.models import prepare_motifs
from pfmalign.search import align_pair


def rc_public(motif):
    """Reverse complement of an (alphabet, ncol) motif."""
    return motif[::-1, ::-1].copy()


@pytest.mark.parametrize("metric", ["EUCL", "SEUCL", "MAN", "HELL", "KL", "IS"])
def test_identical_motifs_distance_zero(motif8, metric):
    """A motif is at distance zero from an exact copy"""
    scores = compare_many([motif8, motif8.copy()], [[0, 1]], metric=metric, rc=False)
    assert scores.shape == (1,)
    assert scores[0] == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("metric, expected", [("PCC", 1.0), ("SW", 2.0), ("BHAT", 1.0)])
def test_identical_motifs_similarity(motif8, metric, expected):
    """Similarity maxima for identical motifs"""
    scores = compare_many([motif8, motif8.copy()], [[0, 1]], metric=metric)
    assert scores[0] == pytest.approx(expected)


def test_reverse_complement_alignment(motif3):
    """Complementary motifs match once the reverse complement is tried"""
    rc3 = rc_public(motif3)

    forward = compare_many([motif3, rc3], [[0, 1]], metric="EUCL", rc=False)[0]
    with_rc = compare_many([motif3, rc3], [[0, 1]], metric="EUCL", rc=True)[0]

    assert forward > 0.1
    assert with_rc == pytest.approx(0.0, abs=1e-12)
    assert with_rc < forward


def test_align_pair_reports_register(motif8, sub_motif, motif3):
    """The best register and orientation are returned explicitly"""
    config = create_comparison_config(metric="EUCL", rc=True)
    motif_set = prepare_motifs([motif8, sub_motif, motif3, rc_public(motif3)], config=config)

    result = align_pair(
        motif_set.motif(0),
        motif_set.motif(1),
        motif_set.motif_ic(0),
        motif_set.motif_ic(1),
        motif_set.backgrounds[0],
        motif_set.backgrounds[1],
        100.0,
        100.0,
        config,
    )
    assert result.score == pytest.approx(0.0, abs=1e-12)
    assert (result.offset1, result.offset2) == (2, 0)
    assert result.shift == 2
    assert not result.used_rc

    result = align_pair(
        motif_set.motif(2),
        motif_set.motif(3),
        motif_set.motif_ic(2),
        motif_set.motif_ic(3),
        motif_set.backgrounds[2],
        motif_set.backgrounds[3],
        100.0,
        100.0,
        config,
    )
    assert result.used_rc


def test_low_ic_alignments_get_worst_score(uniform_motif):
    """Alignments below the mean IC threshold never win"""
    pcc = compare_many([uniform_motif, uniform_motif], [[0, 1]])
    eucl = compare_many([uniform_motif, uniform_motif], [[0, 1]], metric="EUCL")
    assert pcc[0] == -np.inf
    assert eucl[0] == np.inf

    relaxed = compare_many([uniform_motif, uniform_motif], [[0, 1]], min_mean_ic=0.0)
    assert relaxed[0] == pytest.approx(0.0)


def test_raw_sum_ic_mode(uniform_motif):
    """Raw-sum IC of a probability column is 1"""
    scores = compare_many([uniform_motif, uniform_motif], [[0, 1]], ic_mode="raw-sum")
    assert scores[0] == pytest.approx(0.0)


def test_position_ic_threshold_masks_columns(motif8):
    """Masking every column leaves nothing to align"""
    scores = compare_many([motif8, motif8], [[0, 1]], min_position_ic=1.9)
    assert scores[0] == -np.inf


def test_single_low_ic_position_is_masked(motif8):
    """A low-IC column is dropped while the rest of the window is scored"""
    masked = motif8.copy()
    masked[:, 4] = 0.25

    kept = compare_many([masked, masked.copy()], [[0, 1]])
    dropped = compare_many([masked, masked.copy()], [[0, 1]], min_position_ic=0.5)

    # the uniform column correlates with nothing: 7 of 8 columns score 1
    assert kept[0] == pytest.approx(0.875)
    assert dropped[0] == pytest.approx(1.0)


def test_normalise_by_aligned_columns(motif8, sub_motif):
    """Normalisation rescales by aligned columns over the longer motif length"""
    plain = compare_many([motif8, sub_motif], [[0, 1]], metric="PCC")
    scaled = compare_many([motif8, sub_motif], [[0, 1]], metric="PCC", normalise=True)
    distance = compare_many([motif8, sub_motif], [[0, 1]], metric="EUCL", normalise=True)

    assert plain[0] == pytest.approx(1.0)
    assert scaled[0] == pytest.approx(0.75)
    assert distance[0] == pytest.approx(0.0, abs=1e-12)


def test_relative_entropy(motif8):
    """Relative IC comparisons still find the exact match"""
    bkgs = [[0.3, 0.2, 0.2, 0.3]] * 2
    scores = compare_many([motif8, motif8], [[0, 1]], backgrounds=bkgs, relative_entropy=True)
    assert scores[0] == pytest.approx(1.0)


def test_allr_zero_background_is_finite(motif8, make_motif):
    """Zero background entries are smoothed before taking log ratios"""
    other = make_motif("TTGACGTA")
    bkgs = [[0.5, 0.5, 0.0, 0.0], [0.5, 0.5, 0.0, 0.0]]
    for metric in ("ALLR", "ALLR_LL", "KL", "IS"):
        scores = compare_many([motif8, other], [[0, 1]], backgrounds=bkgs, metric=metric)
        assert np.isfinite(scores[0])


def test_compare_all_triangle(motif8, sub_motif, make_motif):
    """Row i holds scores for j >= i and the diagonal is self-similarity"""
    motifs = [motif8, sub_motif, make_motif("GGGCCCAA")]
    rows = compare_all(motifs)

    assert [len(row) for row in rows] == [3, 2, 1]
    for row in rows:
        assert row[0] == pytest.approx(1.0)
    assert rows[0][1] == pytest.approx(1.0)

    matrix = comparison_matrix(rows, names=["a", "b", "c"])
    assert list(matrix.index) == ["a", "b", "c"]
    np.testing.assert_array_equal(matrix.values, matrix.values.T)
    assert matrix.loc["c", "a"] == rows[0][2]


def test_comparison_matrix_validation():
    """Rows must form a triangle matching the names"""
    with pytest.raises(ConfigurationError):
        comparison_matrix([np.ones(2), np.ones(2)])
    with pytest.raises(ConfigurationError):
        comparison_matrix([np.ones(1)], names=["a", "b"])


def test_threads_match_serial(motif8, sub_motif, motif3, make_motif):
    """Thread count does not change results"""
    motifs = [motif8, sub_motif, motif3, make_motif("ACGTACGT"), make_motif("TTTAAA")]
    serial = compare_all(motifs, metric="SW", rc=True, nthreads=1)
    threaded = compare_all(motifs, metric="SW", rc=True, nthreads=2)
    for a, b in zip(serial, threaded):
        np.testing.assert_array_equal(a, b)


def test_many_chunks(motif8, sub_motif):
    """Batches spanning several chunks keep pair order"""
    n_repeats = CHECK_INTERVAL + 300
    pairs = np.tile([[0, 1], [1, 1]], (n_repeats, 1))
    scores = compare_many([motif8, sub_motif], pairs, nthreads=2)

    assert scores.shape == (2 * n_repeats,)
    assert np.all(scores[0::2] == scores[0])
    np.testing.assert_allclose(scores[1::2], 1.0)


def test_empty_pairs(motif8):
    """No pairs, no scores"""
    assert compare_many([motif8], []).shape == (0,)


def test_cancelled_batch_raises(motif8, sub_motif):
    """A cancelled batch reports the interruption"""
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(BatchInterrupted):
        compare_many([motif8, sub_motif], [[0, 1]], cancel=cancel)


def test_compare_many_validation(motif8):
    """Bad pairs and inputs are rejected before work starts"""
    with pytest.raises(ConfigurationError):
        compare_many([motif8], [[0, 1]])
    with pytest.raises(ConfigurationError):
        compare_many([motif8], [[0, 0, 0]])
    with pytest.raises(ConfigurationError):
        compare_many([motif8, motif8], [[0, 1]], backgrounds=[[0.25] * 4])
    with pytest.raises(ConfigurationError):
        compare_many([motif8], [[0, 0]], metric="cosine")
    with pytest.raises(ConfigurationError):
        compare_many([motif8], [[0, 0]], config=create_comparison_config(), rc=True)


def test_compare_columns_exported():
    """Column comparison is available from the package"""
    assert compare_columns([0.4, 0.3, 0.2, 0.1], [0.4, 0.3, 0.2, 0.1], "SW") == pytest.approx(2.0)


@pytest.mark.parametrize("metric", ["EUCL", "PCC"])
def test_merge_identical_motifs(motif8, metric):
    """Merging a motif with itself returns it"""
    merged, bkg = merge_many([motif8, motif8.copy()], metric=metric)
    np.testing.assert_allclose(merged, motif8)
    np.testing.assert_allclose(bkg, np.full(4, 0.25))


def test_merge_contained_motif(motif8, sub_motif):
    """A sub-motif merges into the frame of the longer motif"""
    merged, _ = merge_many([motif8, sub_motif], metric="EUCL")
    np.testing.assert_allclose(merged, motif8)

    merged, _ = merge_many([sub_motif, motif8], metric="EUCL")
    np.testing.assert_allclose(merged, motif8)


def test_merge_reverse_complement(motif8):
    """The reverse complement orientation is merged when it aligns better"""
    merged, _ = merge_many([motif8, rc_public(motif8)], metric="EUCL", rc=True)
    np.testing.assert_allclose(merged, motif8)


def test_merge_weights_and_backgrounds(motif8, make_motif):
    """Folding averages with growing weights; backgrounds are averaged"""
    other = make_motif("TTGACGCA", p=0.55)
    bkgs = [[0.4, 0.1, 0.1, 0.4], [0.1, 0.4, 0.4, 0.1], [0.25] * 4]
    merged, bkg = merge_many([motif8, motif8, other], backgrounds=bkgs, metric="EUCL")

    np.testing.assert_allclose(merged, (motif8 * 2 + other) / 3)
    np.testing.assert_allclose(bkg, [0.25, 0.25, 0.25, 0.25])


def test_merge_uses_entropy_ic_in_every_mode(motif8, sub_motif):
    """Merging weighs columns by entropy IC whatever the comparison IC mode"""
    low = sub_motif.copy()
    low[:, [0, 1, 2, 4, 5]] = 0.25
    options = {"metric": "EUCL", "min_mean_ic": 0.5}

    entropy, _ = merge_many([low, motif8], ic_mode="entropy", **options)
    raw_sum, _ = merge_many([low, motif8], ic_mode="raw-sum", **options)

    # mean entropy IC of low is below 0.5, so every register is excluded
    # and the motifs are merged at the first one
    expected = motif8.copy()
    expected[:, :6] = (low + motif8[:, :6]) / 2
    np.testing.assert_allclose(entropy, expected)
    np.testing.assert_allclose(raw_sum, expected)

    aligned, _ = align_motifs([low, motif8], ic_mode="raw-sum", **options)
    np.testing.assert_allclose(aligned[0], low)
    np.testing.assert_allclose(aligned[1], motif8)


def test_merge_single_motif_is_copy(motif8):
    """A single motif is returned as a copy"""
    merged, bkg = merge_many([motif8])
    np.testing.assert_array_equal(merged, motif8)
    assert merged is not motif8
    np.testing.assert_allclose(bkg, np.full(4, 0.25))


def test_align_motifs_common_frame(motif8, sub_motif):
    """Aligned motifs share column indices, padding becomes zero"""
    aligned, used_rc = align_motifs([motif8, sub_motif], metric="EUCL")
    assert used_rc == [False, False]
    np.testing.assert_allclose(aligned[0], motif8)
    np.testing.assert_allclose(aligned[1][:, 2:], sub_motif)
    np.testing.assert_array_equal(aligned[1][:, :2], 0.0)

    aligned, _ = align_motifs([sub_motif, motif8], metric="EUCL")
    np.testing.assert_array_equal(aligned[0][:, :2], 0.0)
    np.testing.assert_allclose(aligned[0][:, 2:], sub_motif)
    np.testing.assert_allclose(aligned[1], motif8)


def test_align_motifs_reverse_complement(motif3):
    """Reverse complemented motifs are flagged and flipped"""
    aligned, used_rc = align_motifs([motif3, rc_public(motif3)], metric="EUCL", rc=True)
    assert used_rc == [False, True]
    np.testing.assert_allclose(aligned[1], motif3)


if __name__ == "__main__":
    pytest.main([__file__])
