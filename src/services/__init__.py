"""Business logic services used by handlers.

Services are imported lazily by handlers so a cold start does not open a
database connection before the first request needs one.
"""

# Do NOT import services here - use lazy loading in handlers instead
