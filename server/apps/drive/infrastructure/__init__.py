"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Misskey drive API client
- External NSFW image classifier client
- Name, MIME type and media helpers

Keep infrastructure concerns separate from business logic.
"""
