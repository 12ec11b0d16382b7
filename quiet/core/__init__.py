"""Core primitives shared by the scheduler and state containers (handles, trace records).

Kept free of FastAPI and redis concerns so it can be reused by the host loop, API routes, and tests.
"""
