"""
AntiSpam - Services Package
===========================

Detection services built on the core store, config and logger.

DESIGN:
    Services take their collaborators as constructor arguments and are
    assembled once per process in src/bootstrap.py.
"""

from .antispam import AntiSpamService

__all__ = [
    "AntiSpamService",
]
