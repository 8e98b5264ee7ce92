"""Utility classes and functions for lanbeacon."""

from lanbeacon.util.disposable import Disposable
from lanbeacon.util.ip import get_all_address_strings, get_broadcast_addresses

__all__ = [
    "Disposable",
    "get_all_address_strings",
    "get_broadcast_addresses",
]
