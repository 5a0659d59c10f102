"""Menu persistence."""
