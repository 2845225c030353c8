from .event import EventCategory, EventSource, UnifiedEvent

__all__ = ["EventCategory", "EventSource", "UnifiedEvent"]
