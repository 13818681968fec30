from __future__ import annotations
from typing import Iterable, Iterator, List, Sequence, TypeVar

T = TypeVar("T")


def chunked(seq: Sequence[T], size: int) -> Iterator[List[T]]:
    """按固定大小切片；最后一片可能不足 size。"""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for i in range(0, len(seq), size):
        yield list(seq[i:i + size])


def unique_keep_order(values: Iterable[T]) -> List[T]:
    seen: set = set()
    out: List[T] = []
    for v in values:
        if v is None or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out
