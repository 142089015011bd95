"""Protocol surfaces — one module per target, all reading the same descriptors.

Every surface follows the same three steps: drop operations skipped on it,
compute convention facts and map shapes through its own type table, then
emit one fragment (or one dispatch binding) per operation.
"""
