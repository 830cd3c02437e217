"""
Configuration package.

Environment settings and the logging dict-config live here; everything
else reads them through ``get_settings()``.
"""

from stockroom.config.settings import Settings, get_settings

__all__ = ['Settings', 'get_settings']
