from __future__ import annotations

import pytest

from entitydb.common import DEFAULT_BATCH_SIZE, chunked


def test_chunked_yields_fixed_size_slices() -> None:
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]


def test_chunked_empty_sequence_yields_nothing() -> None:
    assert list(chunked([], 3)) == []


def test_chunked_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError, match="positive"):
        list(chunked([1], 0))


def test_default_batch_size() -> None:
    assert DEFAULT_BATCH_SIZE == 5000
    assert len(list(chunked(list(range(10_001))))) == 3
