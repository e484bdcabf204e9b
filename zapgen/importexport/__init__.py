"""Project file import."""
