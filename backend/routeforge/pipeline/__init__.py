"""Request Pipeline — validation, authorization, sanitization and response orchestration.

Invariants:
    - Every middleware is async (request, reply) -> None and terminates the chain by sending
    - Nothing in the pipeline lets a raw exception reach the transport: every path ends
      in a ResponseEnvelope
"""
