"""Persistence gateway implementations."""
