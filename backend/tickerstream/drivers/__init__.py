"""
Page-driving capability: abstract contract plus the playwright implementation.
"""
from tickerstream.drivers.base import PageDriver, BrowserContainer, BrowserLauncher

__all__ = ["PageDriver", "BrowserContainer", "BrowserLauncher"]
