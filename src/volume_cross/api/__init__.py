"""
REST API layer
"""
