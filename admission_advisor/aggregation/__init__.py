"""Candidate aggregation and the historical join."""
