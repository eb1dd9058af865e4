"""
Network Test Harness

Synthesizes phased transaction load and drives it through miniature,
simulated multi-node network topologies with per-node latency, capacity
and failure behaviour.

Layers:
    domain       - immutable models and pure simulation services
    application  - run lifecycle (orchestrator, generation tracker), stores
    adapters     - in-memory history, catalog loader, console reporter, CLI
"""

__version__ = "1.0.0"
