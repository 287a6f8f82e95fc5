"""Infrastructure adapters (logging, database, messaging, providers)."""
