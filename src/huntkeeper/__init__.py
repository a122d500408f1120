"""HUNTKEEPER

Storage core for scavenger-hunt data: a global registry document plus one
document per organization, kept readable across schema versions and safe
under concurrent writers through etag compare-and-swap.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
