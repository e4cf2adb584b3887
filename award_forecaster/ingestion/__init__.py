"""
Ingestion layer — external reference data.

Submodules:
  macro_client — TED v3 search client for prior-year per-country award totals,
                 with a process-wide TTL cache.

Environment overrides (.env, gitignored):
  AWARD_FORECASTER_TED_API_BASE_URL         — TED API base URL
  AWARD_FORECASTER_MACRO_CACHE_TTL_SECONDS  — cache lifetime in seconds
"""
