"""Analysis pipeline, matching engine, and recommendation service.

Each step is callable on its own so the API, background tasks, and tests can
drive them independently.
"""
