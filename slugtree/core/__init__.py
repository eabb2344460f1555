"""Core package: settings and database support."""
