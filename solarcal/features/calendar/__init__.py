"""
Solar calendar engine.

Deterministic mapping between Gregorian dates and the 364-day solar
calendar (13 months of 28 days) relative to an anchor preset:
- conversion: Gregorian <-> calendar position
- identifiers: sortable date identifier codec
- grid: month/year grids with rule-driven day flags
- export / search: ICS/JSON export and day navigation queries

All functions here are pure; anchor selection lives in features.presets.
"""
