"""Core Layer — pure routing logic, no IO, no async, no framework imports.

Invariants:
    - No module in core/ imports from services/, pipeline/, api/ or infrastructure/
    - Naming-convention parsing and method inference are deterministic

Design Decisions:
    - Functional core separated from imperative shell: discovery and registration
      orchestrate IO around these functions
"""
