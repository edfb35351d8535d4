"""
Front-end service.

Seeds the record store, exposes the records over HTTP and publishes them to
the broker's inbound queue on request.
"""
