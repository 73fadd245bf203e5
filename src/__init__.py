"""
Trade Leads - Core Package

This package contains the permit classification core: scope classification,
trade matching, lead scoring and batch reclassification of building permits.
"""

__version__ = "0.1.0"
