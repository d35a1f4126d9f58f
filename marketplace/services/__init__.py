"""
High-level use cases for the marketplace account core.

AccountService orchestrates the document store, session store, credential
hashing and payment provider. A transport layer should call it instead of
touching those collaborators directly.
"""
