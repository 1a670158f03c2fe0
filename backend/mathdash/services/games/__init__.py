"""Quiz domain services: problems, scoring rules, sessions and timers.

This package contains the session engine and its collaborators. HTTP
routes and socket handlers import from here, keeping transport concerns
separated from the core game rules.
"""
