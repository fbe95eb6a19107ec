"""auth/ -- Authentication and session lifecycle package for MediaVault.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or media/.
api/ imports from auth/, not the other way around.
"""
