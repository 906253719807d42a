"""
Journeylog - travel journals shared with collaborators or published by link.

The interesting part lives in `journeylog.auth`: a single authorization
engine that every journey, post, grant and role operation goes through.
"""

__version__ = "0.1.0"
