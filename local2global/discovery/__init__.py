"""Discovery of a parent's local (free-text) attributes.

- service.py: list local attributes with usage in children and a suggested target
"""
