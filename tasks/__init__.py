"""tasks/ -- Task persistence and the session-scoped favorite slot.

Layer rule: tasks/ does NOT import from api/. tasks/favorites.py reads and
writes the SessionState defined in auth/session.py.
"""
