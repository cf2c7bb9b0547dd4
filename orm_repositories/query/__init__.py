"""
Fluent query builder used by repositories.
"""
