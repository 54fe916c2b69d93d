"""
Core type definitions and protocols for lib.cache.
"""

from typing import Protocol, TypeVar

K = TypeVar("K")  # Key type
V = TypeVar("V")  # Value type
T = TypeVar("T", contravariant=True)  # Object type accepted by key generators


class KeyGenerator(Protocol[T]):
    """
    Protocol for turning cache keys into the strings actually stored.

    Example:
        >>> class LowerKeyGenerator(KeyGenerator[str]):
        ...     def generateKey(self, obj: str) -> str:
        ...         return obj.lower()
    """

    def generateKey(self, obj: T) -> str:
        """
        Generate string cache key from object.

        Args:
            obj: The object to convert to a cache key

        Returns:
            str: A string representation suitable for use as a cache key
        """
        ...
