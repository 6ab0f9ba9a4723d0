"""
Repository layer for data access operations.

This package contains repository modules that encapsulate database queries
and business rules for the booking platform's entities.
"""
