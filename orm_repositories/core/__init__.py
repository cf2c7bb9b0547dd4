"""
Configuration, logging, database and container plumbing.
"""
