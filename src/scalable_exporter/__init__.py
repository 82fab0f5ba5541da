"""Export Scalable Capital broker transactions as a Portfolio Performance CSV."""

__version__ = "0.1.0"
