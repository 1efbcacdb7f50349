"""
Domain layer for the seeding toolkit.
Contains card, user and SQL generation logic.
"""

from .models import *
from .cards import *
from .users import *
from .sqlgen import *
