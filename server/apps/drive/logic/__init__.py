"""Business logic layer for drive app.

This package contains all business logic for drive operations:
- Path to folder ID resolution and directory creation
- Listing, folder creation, rename, move, delete, details
- Upload proxying, search, recent files and media scans
- NSFW checks and connectivity checks

All business logic should be implemented here, separate from
views (HTTP layer) and infrastructure (external systems).
"""
