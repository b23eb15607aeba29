"""Organization settings."""
