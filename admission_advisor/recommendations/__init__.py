"""
Recommendation layer: tier partitioning, within-tier ranking, reasons and
the pure end-to-end engine.
"""
