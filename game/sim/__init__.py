"""
Determinism-friendly simulation helpers.

Seeded RNG streams, explicit sim time, display contracts and console logging.
Nothing in here reads a wall clock or the global `random` module state.
"""
