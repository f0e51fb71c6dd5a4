"""Condition-driven specialization of kpt packages: KRM objects, Kptfile conditions, inventory, diff and readiness."""

__version__ = "0.1.0"