"""
Version information for crowdmap-search package.
"""

# The version is declared once in pyproject.toml and read back from the
# installed distribution metadata.
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("crowdmap-search")
except PackageNotFoundError:
    # Package is not installed
    __version__ = "0.0.0+unknown"
