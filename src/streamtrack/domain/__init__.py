"""
Domain layer - persisted tables and the value types handed to callers.

Table classes live in entities.py; callers only ever receive the value
types from types.py.
"""
