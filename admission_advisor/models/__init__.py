"""Pydantic request, candidate and score-ranking models."""
