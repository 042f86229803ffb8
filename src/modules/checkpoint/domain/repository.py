"""Checkpoint repository interface."""

from abc import ABC, abstractmethod

from src.modules.checkpoint.domain.entities import CheckpointMap, CheckpointState


class CheckpointRepository(ABC):
    """Checkpoint repository interface."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the persisted state."""
        pass

    @abstractmethod
    async def load(self) -> CheckpointMap | None:
        """Load persisted state; None means no checkpoint exists yet."""
        pass

    @abstractmethod
    async def save(self, checkpoint: CheckpointMap) -> None:
        """Atomically replace persisted state with the given map."""
        pass

    async def state(self) -> CheckpointState:
        checkpoint = await self.load()
        if checkpoint is None:
            return CheckpointState.MISSING
        return checkpoint.state
