"""Pydantic Schemas — wire envelope and declarative route configuration.

Invariants:
    - Schemas validate at system boundaries (config files in, envelopes out)
    - Envelope fields serialize with camelCase aliases and omit None
"""
