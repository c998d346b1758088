"""Kubernetes operator converging notification resources with Resend and Loops."""

__version__ = "0.1.0"
