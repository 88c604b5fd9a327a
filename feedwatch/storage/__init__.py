"""Storage layer for the announcement spool."""

from feedwatch.storage.database import Database
from feedwatch.storage.spool import Spool

__all__ = ["Database", "Spool"]
