"""GitHub REST access."""
