"""State/stream layer.

Turns the store's streaming events into a local mirror of a subtree, from
which immutable snapshots are cut for the controller.
"""
