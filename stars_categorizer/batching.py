"""Split a collection into fixed-size batches for the classification service."""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 100


def split_into_batches(items: Sequence[T], max_batch_size: int = DEFAULT_BATCH_SIZE) -> List[List[T]]:
    """
    Partition `items` into consecutive batches of at most `max_batch_size`.
    Parameters:
    - items: ordered collection.
    - max_batch_size: upper bound per batch, must be positive.
    Returns: list of batches; concatenated they equal `items`. Empty input gives [].
    """
    if max_batch_size <= 0:
        raise ValueError(f"max_batch_size must be positive, got {max_batch_size}")
    return [list(items[i : i + max_batch_size]) for i in range(0, len(items), max_batch_size)]
