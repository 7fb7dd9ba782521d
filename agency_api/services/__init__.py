"""Domain mutation handlers, one module per resource.

Each handler validates input, asks the policy, performs the write and
commits, and only then fires change-log and notification side effects.
"""
