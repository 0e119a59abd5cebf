"""Core infrastructure shared by all modules."""
