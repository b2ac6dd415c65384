"""Service layer for changelog business logic.

Routes stay thin and handle HTTP concerns only. Services own the rules:

    Routes (HTTP) -> Services (business logic) -> core.github_client / core.cache

Services should not know about HTTP status codes or request objects.
"""
