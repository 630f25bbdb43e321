"""Warranty expiry report for Peplink InControl devices."""

__all__ = [
    "config",
    "models",
    "auth",
    "incontrol_client",
    "expiry",
    "report",
    "email_formatter",
    "mailer",
    "orchestrator",
]
