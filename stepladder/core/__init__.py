"""Core module for the stepladder application."""

from .types import APIResponse, FirestoreDocument

__all__ = ["FirestoreDocument", "APIResponse"]
