"""Season forecast: predict a league season matchday by matchday."""

__version__ = "1.0.0"
