"""Security

session.py: Bearer-token sessions (hashed at rest, TTL, revoke)
"""
