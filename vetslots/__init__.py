"""
vetslots - veterinary consultation availability and booking.
"""

__version__ = "0.1.0"
