"""Clinic staff shift auto-assignment and fairness engine."""

__version__ = "0.1.0"
