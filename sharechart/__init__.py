"""
Price-history chart for content shares.

The geometry lives in `sharechart.core` and has no Qt dependency; `sharechart.ui`
draws it with pyqtgraph and turns pointer events into hover selections.
"""

from __future__ import annotations

__version__ = "0.3.0"
