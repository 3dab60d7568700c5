"""Shared Kernel module.

Graph identity (fingerprints) and the outbox consumption contract: value
objects, ports, retry policy and exceptions. The projection context, the
graph adapter and the worker all depend on these; the backfill job must
compute the same fingerprints, so changes here re-key the graph.
"""
