"""
Forecasting layer — anchor/gap resolution and the monthly forecast engine.

Modules
-------
anchor  : resolve_anchor() — projection start, zero-filled gap months, staleness.
series  : SeriesPoint assembly for history, gaps and projected months.
engine  : build_forecast() — end-to-end forecast for one payload.
sample  : Built-in five-month sample payload for the CLI.
"""
