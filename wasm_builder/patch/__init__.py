"""Generated JS binding patches."""
