"""
Core infrastructure: errors, logging, update middlewares.
"""
