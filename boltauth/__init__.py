"""
Bolt accounts - username/password authentication with signed cookie sessions.
"""
