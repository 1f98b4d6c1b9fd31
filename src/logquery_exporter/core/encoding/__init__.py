"""Encoders for exposition formats."""
