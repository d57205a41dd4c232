"""
apk-downloader: batch retrieval of Android application packages from
third-party distribution sources.
"""

__version__ = "0.3.0"
