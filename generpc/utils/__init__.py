"""Utility functions for generpc."""

from generpc.utils.exceptions import GeneRPCError, RegistrationError, sanitize_error_message

__all__ = [
    "GeneRPCError",
    "RegistrationError",
    "sanitize_error_message",
]
