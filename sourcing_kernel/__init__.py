"""
Sourcing Kernel

Pricing and lifecycle core for a B2B sourcing marketplace:
- Margin resolution with strict source precedence
- Quote and order lifecycles driven by declared state machines
- Append-only credit-limit ledger
- Guarded (compare-and-swap) state changes, one writer per entity
"""

__version__ = "0.1.0"
