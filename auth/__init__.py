"""auth/ -- Trust boundary for Pennant: password hashing, admin identity,
session cookies and SDK service tokens.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/, edge/, or flags/.
api/ imports from auth/, not the other way around.
"""
