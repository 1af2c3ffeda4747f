"""
Dashboard configuration.
"""
