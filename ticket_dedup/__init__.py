"""
Related Ticket Finder - finds previously recorded tickets that are likely
the same underlying issue as a new one.
"""
__version__ = "1.0.0"
