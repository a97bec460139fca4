"""
volfund: lazily-updated funding-fee snapshots for a volatility-index platform
"""

__version__ = "0.1.0"
