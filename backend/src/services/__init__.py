"""Domain services for the client portal backend."""
