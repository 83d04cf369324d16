"""
Data models shared across the core modules.
"""

from asdf_vm.models.plugin import Plugin

__all__ = ["Plugin"]
