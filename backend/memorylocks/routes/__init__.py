# Routes package init
"""
Memory Locks API — Routes Package
==================================

Route Inventory:
    - health.py:         GET /, /health, /public/health, /api/status
    - locks.py:          /locks (ownership, naming, seal, storage, scans, bulk create)
    - media_objects.py:  /media-objects (create, list, update, delete, batch reorder)
    - albums.py:         GET /album/{identifier}, /albums/{identifier} (public)
    - users.py:          /users (lookups, registration, provider linking, deletion)

Routes stay thin: parse the request, call a service, wrap the result in
the {Success, Message, Data} envelope. Business rules live in services/.
"""
