"""Status channel for session progress and failure messages."""

import logging
import threading
from typing import List, Optional

from pubsub import pub

from ..models.session import StatusMessage

logger = logging.getLogger(__name__)

DEFAULT_STATUS_TOPIC = "session.status"


class StatusChannel:
    """Single-writer channel: the owning session is the only publisher.

    Messages are published on a pypubsub topic and kept in order in
    ``history`` so the sequence of transitions can be inspected.
    """

    def __init__(self, topic: str = DEFAULT_STATUS_TOPIC):
        self.topic = topic
        self.history: List[StatusMessage] = []
        self._lock = threading.Lock()

    def publish(self, message: StatusMessage) -> None:
        with self._lock:
            self.history.append(message)
        logger.info(f"[{message.session_id}] {message.state.value}: {message.text}")
        pub.sendMessage(self.topic, status=message)

    @property
    def latest(self) -> Optional[StatusMessage]:
        with self._lock:
            return self.history[-1] if self.history else None

    def texts(self) -> List[str]:
        with self._lock:
            return [message.text for message in self.history]
