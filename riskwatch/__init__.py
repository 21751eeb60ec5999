"""Crypto portfolio risk scoring and live alerting."""

__version__ = "0.1.0"
