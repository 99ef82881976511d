"""
Shared utilities (logging, content types).
"""
