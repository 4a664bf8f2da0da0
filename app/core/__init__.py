"""
Shared exceptions and dependency aliases.
"""
