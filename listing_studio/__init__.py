"""
Listing Studio - generation, review and marketplace publishing of product assets
"""
__version__ = "1.0.0"
