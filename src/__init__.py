"""
HeavenlyHub voice backend.

Exports:
- session: models, state machine, error taxonomy, session stores
- voice: token issuer, room admin, session service (server side)
- client: API client, room connection, session client
- chat: persona text chat
- web: FastAPI application
"""
