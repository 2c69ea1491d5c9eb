"""
admission_advisor.reporting: output files and terminal formatting.

Modules:
  export      CSV/JSON writers for a ``TieredRecommendations`` result.
  formatters  Plain-text tables for the Typer CLI.
"""
