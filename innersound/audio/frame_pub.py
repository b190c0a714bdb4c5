"""Visualization frame publisher for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.audio import VisualizationFrame

logger = logging.getLogger(__name__)


class FramePublisher:
    """Publishes visualization frames using pubsub.pub."""

    def __init__(self, topic: str = "visualizer.frame"):
        """Initialize frame publisher.

        Args:
            topic: Pub/sub topic name for visualization frames
        """
        self.topic = topic
        logger.info(f"FramePublisher initialized with topic: {topic}")

    def publish_frame(self, frame: VisualizationFrame) -> None:
        """Publish a frame to the pub/sub topic.

        Listeners run synchronously on the frame clock thread and must copy
        the magnitudes if they keep them.
        """
        pub.sendMessage(self.topic, frame=frame)
