"""Authentication and authorization.

Learn: stream clients and publishers authenticate with a bearer JWT.
The token's `sub` claim is the subscriber key the stream registers
under; the `scopes` claim gates the admin endpoints.
"""
