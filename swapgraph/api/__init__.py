"""HTTP wrapper around the matching engine."""
