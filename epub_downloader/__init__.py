"""
O'Reilly EPUB Downloader: a terminal client for O'Reilly Learning.
"""

__version__ = "0.1.0"
