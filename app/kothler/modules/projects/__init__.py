"""
Projects: portfolio entries.
"""
