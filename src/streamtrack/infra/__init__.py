"""
Infrastructure layer - database, logging, settings, and technical concerns.

This layer contains infrastructure concerns like the SQLite engine,
the unit-of-work boundary, logging and configuration.
"""
