from __future__ import annotations
from dataclasses import dataclass
from dataclasses_json import dataclass_json
from typing import List, Optional, TextIO
import abc
import itertools
import sys
import logging

logger = logging.getLogger(__name__)


@dataclass_json
@dataclass
class DeinitEvent:
    seq: int
    kind: str
    ident: str
    message: str


class NotificationSink(abc.ABC):
    # Receives one notification per finalized entity, in finalization order.

    def __init__(self):
        self._seq = itertools.count()

    def emit(self, kind: str, ident, message: str) -> DeinitEvent:
        event = DeinitEvent(next(self._seq), kind, str(ident), message)
        self.deliver(event)
        return event

    @abc.abstractmethod
    def deliver(self, event: DeinitEvent):
        pass


class RecordingSink(NotificationSink):
    def __init__(self):
        super().__init__()
        self.events: List[DeinitEvent] = []

    def deliver(self, event: DeinitEvent):
        self.events.append(event)

    @property
    def messages(self) -> List[str]:
        return [event.message for event in self.events]


class LoggingSink(NotificationSink):
    def __init__(self, name: str = "retain_cycles"):
        super().__init__()
        self.logger = logging.getLogger(name)

    def deliver(self, event: DeinitEvent):
        self.logger.info(event.message)


class PrintSink(NotificationSink):
    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream

    def deliver(self, event: DeinitEvent):
        # resolved at delivery time so a replaced sys.stdout is honored
        print(event.message, file=self.stream or sys.stdout)


class TeeSink(NotificationSink):
    def __init__(self, sinks: List[NotificationSink]):
        super().__init__()
        self.sinks = sinks

    def deliver(self, event: DeinitEvent):
        for sink in self.sinks:
            sink.deliver(event)
