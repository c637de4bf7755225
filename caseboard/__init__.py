"""Core (UI-agnostic) case statistics logic.

This package contains:
- source client (OData category endpoints -> raw location rows)
- country aggregation and the published snapshot
- derived metrics (active share, color domains) and scale functions
- view payload builders (JSON-serializable map / treemap / table payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""

__version__ = "0.1.0"
