from dataclasses import dataclass

from .bus import Event


@dataclass(kw_only=True)
class DomainEvent(Event):
    source: str = ""
