"""FinanceTracker API: multi-tenant personal finance backend."""

__version__ = "0.1.0"
