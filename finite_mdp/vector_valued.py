"""
Content-based equality for custom state classes.

By default, instances of a plain class compare and hash by identity, so two
separately built states for the same grid cell are different keys. Mixing in
VectorValued makes equality, hashing and ordering follow to_tuple() instead.
"""

from functools import total_ordering
from typing import Tuple


@total_ordering
class VectorValued:
    """
    Mixin that defines equality, hashing and ordering via to_tuple().

    Subclasses must implement to_tuple(). Ordering lets the ArrayModel use
    binary search over states.
    """

    def to_tuple(self) -> Tuple:
        raise NotImplementedError

    def __eq__(self, other):
        if not isinstance(other, VectorValued):
            return NotImplemented
        return self.to_tuple() == other.to_tuple()

    def __lt__(self, other):
        if not isinstance(other, VectorValued):
            return NotImplemented
        return self.to_tuple() < other.to_tuple()

    def __hash__(self):
        return hash(self.to_tuple())
