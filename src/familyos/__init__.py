"""
FamilyOS core.

Policy decisions, screen-time accounting, audit batching and encryption for
a household parental-control product.
"""

__version__ = "0.1.0"
