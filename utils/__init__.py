"""
Shared helpers for Lambda handlers: decorators, event parsing and errors.
"""
