"""Core runtime: configuration, shared state, outbox, dispatch and supervision."""
