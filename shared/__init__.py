"""
Shared Kernel

Pieces every app relies on: the time range value object, the booking error
taxonomy, domain events with their unit of work and message bus, secret
encryption, and the cache lock used by calendar reconciliation.
"""
