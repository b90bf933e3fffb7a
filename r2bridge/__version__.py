"""Version information for r2bridge."""

__version__ = "1.0.0"
__author__ = "r2bridge contributors"
__author_email__ = ""
__license__ = "GPL-3.0"
__url__ = ""
