"""
==============================================================================
Product Scan Service
==============================================================================

Product-identity payload codec and camera scan-decode sessions.

==============================================================================
"""

__version__ = "1.0.0"
