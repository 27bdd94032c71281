"""
policyscout: discovery and validation of published policy documents.
"""

__version__ = "0.1.0"
