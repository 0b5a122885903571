"""API Layer — FastAPI binding of the server capability and global error handlers.

Invariants:
    - Discovered/declared routes reach FastAPI only through FastAPIServer.register
    - All endpoints return envelope-shaped JSON responses
"""
