"""EUDR compliance-pack generation and approval pipeline."""

__version__ = "0.1.0"
