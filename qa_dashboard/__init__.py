"""QA Dashboard API: test discovery, execution and QA tooling."""

__version__ = "1.0.0"
