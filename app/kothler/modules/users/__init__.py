"""
Users: authentication-capable accounts, each attached to exactly one Role.
"""
