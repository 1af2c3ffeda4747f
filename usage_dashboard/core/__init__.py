"""
Core modules for the usage dashboard.

This package contains aggregation, sorting, filtering, pagination,
currency conversion, derived metrics and view assembly.
"""
