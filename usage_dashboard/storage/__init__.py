"""
Usage data models and sources.
"""
