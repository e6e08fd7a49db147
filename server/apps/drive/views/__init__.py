"""HTTP layer for drive app.

- ``api``: JSON endpoints used by the browser front end
- ``pages``: server-rendered file manager pages
"""
