"""
API Routes Package
==================
Shared helpers for the research API in api.py.

Modules:
  helpers  - DB utilities, type coercion, research row loading
"""
