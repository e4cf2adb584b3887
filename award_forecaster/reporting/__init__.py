"""
award_forecaster.reporting — Narrative sentences and terminal reports.

Modules:
  formatters — metric formatting (notices / € with K/M/B), summary sentence
               templates, and ASCII report formatters for Typer CLI commands.
"""
