"""Test-data seeding toolkit for an access-control management system."""

__version__ = "0.1.0"
