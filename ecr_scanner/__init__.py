"""Periodic AWS ECR image scan trigger."""

__version__ = "0.1.0"
