"""
Blueprint registry.

Every content blueprint is mounted under ``ORG_PREFIX`` so views receive the
organization ``slug`` as a keyword argument and guard themselves with
``kb_editor.auth.require_org``.
"""

API_PREFIX = "/api/v1"
ORG_PREFIX = f"{API_PREFIX}/orgs/<slug>"
