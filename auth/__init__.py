"""auth/ -- Authentication and session lifecycle package for Chirpy.

Leaf modules (errors, passwords, tokens, refresh, headers) import only stdlib
and third-party libraries. store, sessions and dependencies build on them.
api/ imports from auth/, not the other way around.
"""
