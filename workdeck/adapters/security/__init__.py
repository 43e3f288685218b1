"""Credential and token adapters."""

from .passwords import BcryptPasswordHasher
from .tokens import JwtTokenIssuer

__all__ = ["BcryptPasswordHasher", "JwtTokenIssuer"]
