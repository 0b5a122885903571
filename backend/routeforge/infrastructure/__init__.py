"""Infrastructure Layer — filesystem loading, logging, error reporting and the database handle.

Invariants:
    - Infrastructure implements core/protocols.py contracts; core never imports it
    - All failures mapped to core/errors.py types at this boundary
"""
