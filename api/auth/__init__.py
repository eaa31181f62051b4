"""
Authentication: password/credential checks, access tokens, and the bearer gate.
"""
