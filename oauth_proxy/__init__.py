"""CORS-enabled proxy for an external OAuth provider."""
