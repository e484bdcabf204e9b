"""Template helpers and the generation engine."""
