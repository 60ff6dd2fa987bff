"""Pulseboard - uptime monitoring for a fixed set of HTTP endpoints."""
