"""Web framework adapters for the pull endpoint."""
