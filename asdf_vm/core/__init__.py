"""
Core plugin, install and shim logic.
"""
