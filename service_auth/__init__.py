"""
Auth service for the authorization core.
"""
