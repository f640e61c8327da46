"""Infrastructure services: structured logging."""
