"""
Dependency Heartbeat

A tool for finding unmaintained direct dependencies of a project.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main"]
