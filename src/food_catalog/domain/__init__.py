"""Domain models and pure calculations."""
