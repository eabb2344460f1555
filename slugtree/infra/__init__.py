"""Infrastructure: logging."""
