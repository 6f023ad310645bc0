"""HTTP routes"""
from . import amr, amu, health, reference

routers = [health.router, amu.router, amr.router, reference.router]

__all__ = ["routers"]
