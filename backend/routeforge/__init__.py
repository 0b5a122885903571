"""RouteForge — convention-driven route assembly and request pipeline.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "1.0.0"
