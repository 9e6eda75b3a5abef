# Services Module
from .notifications import CartNotifier
from .regions import RegionResolver

__all__ = ["CartNotifier", "RegionResolver"]
