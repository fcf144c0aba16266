"""AI proofreading commands for a plain-text composer."""

__version__ = "0.3.0"
