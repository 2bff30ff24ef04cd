# Middleware package init
"""
OptSolv Backend — Middleware Package
======================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

Starlette runs the middleware added last as the outermost layer, so
create_app() registers them in the reverse of this order.
"""
