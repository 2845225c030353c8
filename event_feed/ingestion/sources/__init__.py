"""Remote catalog sources."""

from .ticketmaster import TicketmasterSource, map_ticketmaster_event

__all__ = ["TicketmasterSource", "map_ticketmaster_event"]
