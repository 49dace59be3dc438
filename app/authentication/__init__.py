"""
Authentication app: accounts, roles, TOTP multi-factor and policy acceptance.
"""
