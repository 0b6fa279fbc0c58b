"""
Decomposition Enumerator
Splits a candidate string into x·y·z with |xy| <= p and |y| > 0.
"""

from typing import List

from .schemas import Decomposition


def enumerate_decompositions(s: str, p: int) -> List[Decomposition]:
    """
    All valid splits of s for pumping length p.

    Order is part of the contract: increasing i_start, then increasing i_end.
    Indices count code points (Python str indexing already does).
    """
    bound = min(p, len(s))
    out = []
    for i in range(0, bound + 1):
        for j in range(i + 1, bound + 1):
            out.append(Decomposition(x=s[:i], y=s[i:j], z=s[j:], i_start=i, i_end=j))
    return out


def pump(decomposition: Decomposition, i: int) -> str:
    """x · y^i · z"""
    if i < 0:
        raise ValueError(f"pump count must be >= 0, got {i}")
    return decomposition.x + decomposition.y * i + decomposition.z
