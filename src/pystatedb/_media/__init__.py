"""Persistence media wrapped by :class:`~pystatedb.store.KeyedStore`."""

from pystatedb._media.base import Medium
from pystatedb._media.file import FileMedium
from pystatedb._media.http import HttpMedium
from pystatedb._media.memory import MemoryMedium

__all__ = ["FileMedium", "HttpMedium", "Medium", "MemoryMedium"]
