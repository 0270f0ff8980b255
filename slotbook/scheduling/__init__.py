"""Pure scheduling engine.

Nothing in this package touches the database or the wall clock: the
current instant is always passed in as ``now``.
"""
