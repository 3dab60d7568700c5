"""Graph primitives module.

Foundational components for graph identity shared by the worker and the
backfill collaborator.
"""

from shared_kernel.graph_primitives.fingerprint import (
    KEY_SEPARATOR,
    composite_fingerprint,
    fingerprint,
)

__all__ = ["KEY_SEPARATOR", "composite_fingerprint", "fingerprint"]
