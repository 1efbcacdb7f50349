"""
Application layer for the seeding toolkit.
Coordinates between domain and infrastructure layers.
"""

from .retry import *
from .allocator import *
from .work_queue import *
from .provisioning import *
from .services import *
