"""
Infrastructure layer for external dependencies.
Contains adapters for the vendor HTTP API and the file system.
"""

from .vendor_client import *
from .file_adapter import *
