"""Library staging."""
