"""Web framework adapters for the control-plane endpoints."""
