"""Selection state layer.

The selection state machine is the only component allowed to change what
detail view is presented; everything else reads immutable snapshots.
"""
