"""Pipeline orchestration, persistence and naming services."""
