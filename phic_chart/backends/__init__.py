"""Drawing backends that consume render primitives."""
