"""
Audit app: append-only record of security and moderation relevant actions.
"""
