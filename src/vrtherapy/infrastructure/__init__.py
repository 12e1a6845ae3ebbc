"""Infrastructure adapters - database, auth, metrics and monitoring."""
