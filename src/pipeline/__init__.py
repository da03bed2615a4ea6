"""Pipeline orchestration: daily run and report summary helpers."""
