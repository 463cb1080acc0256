from touchpoint.models.record import Category, PreferredAction, TouchpointRecord

__all__ = [
    "Category",
    "PreferredAction",
    "TouchpointRecord",
]
