"""
AMR Surveillance API

Read-only analytics over antimicrobial resistance (AMR) and antimicrobial
use (AMU) surveillance tables
"""
__version__ = "1.0.0"
