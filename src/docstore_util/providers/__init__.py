"""Storage engine implementations.

Each provider module exports a `Provider` class alias for the main provider class,
along with its credentials and params types.

Available providers:
- memory: in-process engine, no extra dependencies
- firestore: Cloud Firestore via google-cloud-firestore (install the `firestore` extra
  and import `docstore_util.providers.firestore` directly)
"""

from docstore_util.providers import memory

__all__ = [
    "memory",
]
