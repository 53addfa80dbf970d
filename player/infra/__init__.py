"""Clients for external infrastructure (Redis, the exploration server)."""
