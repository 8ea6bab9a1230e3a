"""
memkeep: local-first memory for personal assistant tools.

Provides:
- SQLite record store for atomic memories (scoped, tagged)
- Best-effort mirroring to a remote memory log (Mem0)
- Activity-triggered rolling summaries per scope
- Shared user profile with remote snapshot reconciliation
"""

__version__ = "0.3.0"
