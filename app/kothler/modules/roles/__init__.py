"""
Roles: named bundles of permission strings.
"""
