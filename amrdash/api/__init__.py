"""
AMR Surveillance HTTP API

FastAPI application over the surveillance calculations
"""
from .app import create_app

__all__ = ["create_app"]
