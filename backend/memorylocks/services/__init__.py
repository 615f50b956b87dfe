# Services package init
"""
Memory Locks API — Services Layer
==================================

What:  Business rules sitting between routes (HTTP) and the database.
How:   Stateless singletons; every method receives the request's
       AsyncSession, so one request is one transaction.

Service Inventory:
    - EntityService (base): get + partial update shared by the three below
    - LockService: ownership, naming, sealing, storage tier, scans, bulk create
    - MediaObjectService: media CRUD, main-picture rule, batch reorder
    - UserService: account lookups, registration, provider linking, deletion
    - MilestoneNotifier: webhook to the core API when a scan milestone is hit
    - id_codec: hashids encode/decode for public lock ids
    - milestones: pure scan-milestone evaluation
"""
