"""
Content module - read-only access to promotable books.
"""
