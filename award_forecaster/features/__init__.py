"""Feature package: folds award inputs into the canonical monthly series.

Modules
-------
monthly_agg — MonthBucket, build_monthly_history(), determine_metric()
"""
