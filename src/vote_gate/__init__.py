"""
Vote Gate - GitHub App that runs a label-driven voting workflow on pull requests
"""

__version__ = "0.1.0"
__author__ = "Anirudh"

from pathlib import Path

# Package metadata
PACKAGE_ROOT = Path(__file__).parent

__all__ = ["__version__", "__author__", "PACKAGE_ROOT"]
