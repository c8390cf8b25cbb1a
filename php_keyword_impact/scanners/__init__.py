"""Source scanners."""
