"""Time sources."""
