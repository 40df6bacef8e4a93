"""
Parsers for daemon replies and zone files.
"""
