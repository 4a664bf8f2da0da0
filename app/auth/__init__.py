"""
Auth module - bearer token verification and read access to users.
"""
