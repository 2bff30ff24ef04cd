# Routes package init
"""
OptSolv Backend — API Routes Package
======================================

Route Inventory:
    - ingest.py:       POST /api/upload, /api/ocr, /api/analyze, /api/pipeline
    - library.py:      GET  /api/documents[/{id}], /api/tasks, /api/notes
                       POST /api/tasks/{id}/toggle
                       DELETE /api/tasks/{id}, /api/notes/{id}
                       GET  /api/files/{key}
    - preferences.py:  GET/PUT /api/preferences
    - health.py:       GET  /health

Routes stay thin: resolve the user, call a service, wrap the result in the
success envelope. Errors propagate to the global handlers in main.py.
"""
