"""Lambda entry points: the HTTP API router, its route handlers and the reply queue consumer."""
