"""Client for the CV Slayer résumé roasting service."""

__version__ = "1.0.0"
