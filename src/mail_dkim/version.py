"""Version information for mail-dkim-python"""

__version__ = "0.1.0"
