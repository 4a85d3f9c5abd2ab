"""Session helpers for identifying the calling user."""
