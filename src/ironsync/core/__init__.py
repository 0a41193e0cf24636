"""
Core update pipeline pieces: resources, byte comparison and atomic install.
"""

from ironsync.core.compare import files_equal
from ironsync.core.install import install_staging_file
from ironsync.core.resource import Resource

__all__ = [
    "Resource",
    "files_equal",
    "install_staging_file",
]
