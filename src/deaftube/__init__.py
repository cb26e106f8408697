"""DeafTube - video sharing for deaf and hard-of-hearing creators."""

__version__ = "0.1.0"
