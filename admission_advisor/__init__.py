"""
admission_advisor: admission-probability estimation and tiered
(Rush / Stable / Safe) application recommendations.
"""

__version__ = "0.1.0"
