"""Durable file storage for uploads."""
