"""Interface definitions for the connect workflow's external collaborators."""

from vksconnect.interfaces.identity_backend import IdentityBackend
from vksconnect.interfaces.operator import OperatorInteraction

__all__ = [
    "IdentityBackend",
    "OperatorInteraction",
]
