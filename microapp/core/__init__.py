"""
microapp Core - Resolution, ordering and composition.

This module contains the building blocks the service sequences:
- Resolver: micro id -> cached descriptor
- PackageGraph: deterministic dependency ordering
- Composer: build/server config composition
- Merge: deep merge and server merge primitives
- StateStore: shared key-value state
"""

__all__ = []
