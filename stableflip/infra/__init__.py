"""
Infrastructure package - logging, chain clients and the async facade.
"""
