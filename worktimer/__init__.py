"""WorkTimer - per-user time tracking for the business-operations app"""

__version__ = "1.0.0"
