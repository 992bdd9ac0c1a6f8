"""Core (UI-agnostic) fleet ops dashboard logic.

This package contains:
- sheet fetching (Google Sheets values API -> raw tables)
- column discovery and date normalization
- per-sheet aggregation (misalignments, alerts, issues)
- response-time summaries and display payloads (JSON-serializable)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
