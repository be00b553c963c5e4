"""
Entity modules live under this package.

Keep module boundaries clean: each module owns its model, repository functions
(service.py) and JSON routes (api.py), while reusing platform primitives
(auth, RBAC, audit, cache, DB session).
"""
