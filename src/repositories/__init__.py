"""Storage backends for the portal core."""
