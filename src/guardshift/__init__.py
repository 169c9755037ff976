"""Weekly shift generation and leave handling for security guard rosters."""

__version__ = "0.1.0"
