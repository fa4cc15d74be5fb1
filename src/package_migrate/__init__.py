"""Package Migration Tool

Copies npm packages, NuGet packages and container images with their full
version history from one GitHub organization to another.
"""

__version__ = '0.1.0'

from .cli import main

__all__ = ['main']
