"""Domain models and static lookup tables."""
