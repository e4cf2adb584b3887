"""
Insight layer — descriptive statistics over the monthly series.

Modules
-------
stats   : median spike, quarter-over-quarter change, country shares,
          macro-budget alignment.
engine  : generate_insights() — summary, highlights and summary cards.
"""
