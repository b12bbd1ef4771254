"""auth/ -- Accounts, login tokens, and the encrypted session cookie for Taskboard.

Layer rule: auth/ imports only stdlib + third-party libraries, core/, and
tasks/models.py (the session carries a favorite Task).
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
