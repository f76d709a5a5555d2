from typing import List

import numpy as np


class RaggedData:
    """
    Class for storing ragged (variable-length) collections of motifs.

    Uses a flattened representation (data + offsets) along the first axis.
    For motif matrices ``data`` has shape ``(total_columns, alphabet)`` and
    item ``i`` owns rows ``offsets[i]:offsets[i + 1]``; for per-column
    vectors (e.g. information content) ``data`` is one-dimensional and
    shares the same offsets.
    """

    def __init__(self, data: np.ndarray, offsets: np.ndarray):
        """Initialize the RaggedData object."""
        self.data = data
        self.offsets = offsets

    def get_length(self, i: int) -> int:
        """Return the number of columns of the i-th item."""
        return int(self.offsets[i + 1] - self.offsets[i])

    def get_slice(self, i: int) -> np.ndarray:
        """Return a slice of data for the i-th item (view)."""
        return self.data[self.offsets[i] : self.offsets[i + 1]]

    def lengths(self) -> np.ndarray:
        """Return the number of columns of every item."""
        return np.diff(self.offsets)

    def total_elements(self) -> int:
        """Return the total number of columns across all items."""
        return self.data.shape[0]

    @property
    def num_items(self) -> int:
        """Return the number of stored items."""
        return self.offsets.size - 1


def ragged_from_list(data_list: List[np.ndarray], dtype=None) -> RaggedData:
    """Create RaggedData from a list of arrays sharing their trailing shape."""
    if len(data_list) == 0:
        return RaggedData(np.empty(0, dtype=dtype if dtype else np.float64), np.zeros(1, dtype=np.int64))

    if dtype is None:
        dtype = data_list[0].dtype

    trailing = data_list[0].shape[1:]
    n = len(data_list)
    lengths = np.empty(n, dtype=np.int64)
    for i in range(n):
        if data_list[i].shape[1:] != trailing:
            raise ValueError(f"Item {i} has trailing shape {data_list[i].shape[1:]}, expected {trailing}")
        lengths[i] = data_list[i].shape[0]

    offsets = np.zeros(n + 1, dtype=np.int64)
    offsets[1:] = np.cumsum(lengths)

    data = np.empty((offsets[-1],) + trailing, dtype=dtype)

    for i in range(n):
        data[offsets[i] : offsets[i + 1]] = data_list[i]

    return RaggedData(np.ascontiguousarray(data), offsets)
