"""
Persistence adapters.

Services depend on the document store interface (find/create/update and the
array mutation protocol) rather than on SQLAlchemy sessions.
"""
