"""Fire-and-forget recording of nudge accept/reject outcomes."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from .models import NudgeInteraction, NudgeType

logger = structlog.get_logger()


class InteractionSink(ABC):
    """Storage for recorded nudge interactions."""

    @abstractmethod
    def append(self, interaction: NudgeInteraction) -> None:
        pass


class InMemoryInteractionSink(InteractionSink):
    def __init__(self):
        self.interactions: list[NudgeInteraction] = []

    def append(self, interaction: NudgeInteraction) -> None:
        self.interactions.append(interaction)

    def accepted_count(self, nudge_type: NudgeType) -> int:
        return sum(1 for i in self.interactions if i.nudge_type is nudge_type and i.accepted)

    def rejected_count(self, nudge_type: NudgeType) -> int:
        return sum(1 for i in self.interactions if i.nudge_type is nudge_type and not i.accepted)


class NudgeInteractionRecorder:
    """Records nudge outcomes without ever failing the caller."""

    def __init__(
        self,
        sink: Optional[InteractionSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.sink = sink if sink is not None else InMemoryInteractionSink()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def record(self, nudge_type: NudgeType, accepted: bool) -> None:
        try:
            interaction = NudgeInteraction(NudgeType(nudge_type), bool(accepted), self._clock())
            self.sink.append(interaction)
        except Exception as e:
            logger.warning(
                "nudge_record_failed",
                nudge_type=str(nudge_type),
                accepted=accepted,
                error=str(e),
            )
            return
        logger.info("nudge_recorded", nudge_type=interaction.nudge_type.value, accepted=accepted)
