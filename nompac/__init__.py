"""
nompac - declarative package management for Arch Linux
"""

__version__ = "0.1.0"
