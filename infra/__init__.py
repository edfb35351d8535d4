"""
Infrastructure primitives.

This package contains low-level building blocks for talking to the
message broker (sessions, queue handles, backends), plus logging,
reconnect and configuration helpers shared by the front end and the
worker.

No business logic.
"""
