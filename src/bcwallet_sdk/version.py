"""
Version information for the Blockchain wallet import SDK
"""

__version__ = "0.1.0"
