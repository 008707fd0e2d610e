"""
Test suite for pgreconcile.
"""
