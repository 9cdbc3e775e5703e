"""Core infrastructure: clock, event stream, logging and configuration."""
