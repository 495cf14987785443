"""
Record store collaborator.

Protocols describing the persistent store the import/export services talk to,
plus an in-memory implementation used by tests and actions.
"""
