"""
Features: the short "why choose us" highlights shown on the home page.
"""
