"""
Event feed aggregation.

Merges the live local event collection with the third-party catalog into a
single de-duplicated, image-consistent list for display.
"""

__version__ = "0.1.0"
