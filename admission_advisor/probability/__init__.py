"""Admission-probability estimator and its lookup tables."""
