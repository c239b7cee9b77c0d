"""Authentication: session JWT verification, API tokens, and the auth middleware."""
