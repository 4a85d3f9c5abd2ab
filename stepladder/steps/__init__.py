"""Read access to recorded step data."""
