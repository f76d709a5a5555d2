"""
Pytest configuration and common fixtures for pfmalign tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest

# Force testing the installed package, not the local source
project_root = str(Path(__file__).parent.parent.absolute())
if project_root in sys.path:
    sys.path.remove(project_root)

ALPHABET = "ACGT"


def motif_from_consensus(consensus: str, p: float = 0.85) -> np.ndarray:
    """Build a DNA motif of shape (4, len(consensus)) favouring the consensus base."""
    other = (1.0 - p) / 3.0
    motif = np.full((4, len(consensus)), other)
    for col, base in enumerate(consensus):
        motif[ALPHABET.index(base), col] = p
    return motif


@pytest.fixture
def make_motif():
    """Return the consensus motif builder."""
    return motif_from_consensus


@pytest.fixture
def motif8():
    """Informative 8-column DNA motif."""
    return motif_from_consensus("TTGACGCA")


@pytest.fixture
def sub_motif(motif8):
    """Last six columns of ``motif8``."""
    return motif8[:, 2:].copy()


@pytest.fixture
def motif3():
    """Short non-palindromic motif (consensus ACT)."""
    return np.array(
        [
            [0.7, 0.1, 0.1],
            [0.1, 0.7, 0.1],
            [0.1, 0.1, 0.1],
            [0.1, 0.1, 0.7],
        ]
    )


@pytest.fixture
def uniform_motif():
    """Motif with zero information content."""
    return np.full((4, 8), 0.25)


@pytest.fixture
def uniform_bkg():
    """Uniform DNA background."""
    return np.full(4, 0.25)
