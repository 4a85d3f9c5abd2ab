"""User display data for group members."""
