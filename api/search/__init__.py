"""
Substring search across notice-board collections.
"""
