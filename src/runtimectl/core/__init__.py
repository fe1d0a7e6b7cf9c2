"""Core control-plane state and operations."""
