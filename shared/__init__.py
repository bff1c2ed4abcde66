"""
AndLibUtils Shared Module
=========================

Configuration, logging and console utilities shared by every
AndLibUtils command.
"""

from shared.config import AndLibConfig

__all__ = ["AndLibConfig"]
