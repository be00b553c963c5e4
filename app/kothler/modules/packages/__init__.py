"""
Packages: priced service bundles with grouped feature lists.
"""
