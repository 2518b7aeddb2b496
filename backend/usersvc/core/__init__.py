# usersvc/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- db: Database configuration and connection management
- errors: Error kinds and their HTTP/RPC status mapping
- redis: Shared Redis client for the user cache and session store
- security: Password hashing and the session-bound token pair
"""
