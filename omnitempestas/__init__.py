"""Omnitempestas — hourly forecasts from several weather providers, reconciled."""

__version__ = "0.1.0"
