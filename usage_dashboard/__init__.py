"""
Usage Dashboard.

Local analytics for AI assistant token usage and spend.
"""

__version__ = "0.1.0"
