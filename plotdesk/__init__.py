"""Plot Desk: reminder scheduling and notification dispatch for a property brokerage."""

__version__ = "1.0.0"
