"""
Marketplace app tests.
"""
