"""
Smart TV remote-control service.

One shared TV exposed over a line-based TCP protocol; every client sees
state changes made by any other client through NOTIFY lines.
"""

from .tv_version import VERSION

__all__ = ["VERSION"]
