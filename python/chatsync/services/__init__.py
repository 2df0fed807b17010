"""Business logic services.

Services are called by route handlers and orchestrate database operations:

- ids: identifier allocation with retry on collision
- quota: live-chat ceiling for direct creates
- sync: watermark pull and batch push
- chats, messages, memories: direct CRUD
"""
