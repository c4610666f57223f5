"""Community Watch - anonymous incident reporting backend"""

__version__ = "1.0.0"
