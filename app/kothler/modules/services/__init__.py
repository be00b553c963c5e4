"""
Services: offered services, addressed publicly by slug.
"""
