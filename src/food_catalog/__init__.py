"""Food unit normalization and catalog merge service."""
