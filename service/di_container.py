"""Dependency injection container for ABR service components.

Provides centralized management of service instances with proper lifecycle
and dependency resolution.
"""

import logging
import uuid
from typing import Any, Optional, Sequence

from abr.exceptions import SessionNotFoundError
from abr.interfaces.inference import IPolicyModel
from service.config import ABRConfig, get_config
from service.factory import SelectionFactory, SelectionSession, Strategy
from service.metrics import DecisionMetrics
from service.video_catalog import VideoCatalog

logger = logging.getLogger(__name__)


class DIContainer:
    """Dependency injection container for service components."""

    def __init__(self, config: Optional[ABRConfig] = None) -> None:
        """Initialize DI container.

        Args:
            config: Configuration to use, defaults to the global instance
        """
        self._config = config or get_config()
        self._instances: dict[str, Any] = {}
        self._sessions: dict[str, SelectionSession] = {}

        logger.info("DI container initialized")

    def get_config(self) -> ABRConfig:
        """Get configuration instance."""
        return self._config

    def get_catalog(self) -> VideoCatalog:
        """Get or create the video catalog."""
        if "catalog" not in self._instances:
            path = self._config.video_catalog_path
            self._instances["catalog"] = (
                VideoCatalog.from_json(path) if path is not None else VideoCatalog.builtin()
            )
        return self._instances["catalog"]

    def get_metrics(self) -> DecisionMetrics:
        """Get or create metrics collector instance."""
        if "metrics" not in self._instances:
            self._instances["metrics"] = DecisionMetrics()
        return self._instances["metrics"]

    def get_policy_model(self) -> IPolicyModel:
        """Get or create the TorchScript policy model."""
        if "policy_model" not in self._instances:
            # Deferred so the utility strategy runs without importing torch
            from abr.policy_model import TorchScriptPolicyModel
            from service.device_selector import select_device

            device = select_device(prefer_gpu=self._config.prefer_gpu)
            self._instances["policy_model"] = TorchScriptPolicyModel(
                self._config.model_path, device=device
            )
        return self._instances["policy_model"]

    def set_policy_model(self, model: IPolicyModel) -> None:
        """Replace the policy model (used by tests and embedders)."""
        self._instances["policy_model"] = model

    def get_factory(self) -> SelectionFactory:
        """Get or create the selection factory."""
        if "factory" not in self._instances:
            self._instances["factory"] = SelectionFactory(
                config=self._config,
                catalog=self.get_catalog(),
                metrics=self.get_metrics(),
                policy_model_provider=self.get_policy_model,
            )
        return self._instances["factory"]

    def create_session(
        self,
        video_id: str,
        strategy: Optional[Strategy] = None,
        companion_tracks: Optional[Sequence[Sequence[float]]] = None,
    ) -> SelectionSession:
        """Create and register a new selection session."""
        session_id = uuid.uuid4().hex[:12]
        session = self.get_factory().create_session(
            session_id, video_id, strategy, companion_tracks
        )
        self._sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> SelectionSession:
        """Look up a registered session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown session: {session_id}")
        return session

    def remove_session(self, session_id: str) -> SelectionSession:
        session = self.get_session(session_id)
        del self._sessions[session_id]
        logger.info("Session closed", extra={"session_id": session_id})
        return session

    def session_count(self) -> int:
        return len(self._sessions)

    def cleanup(self) -> None:
        """Clean up all managed instances."""
        logger.info("Cleaning up DI container")
        self._sessions.clear()
        self._instances.clear()
        logger.info("DI container cleaned up")


# Global container instance
_container: Optional[DIContainer] = None


def get_container() -> DIContainer:
    """Get the global DI container instance.

    Returns:
        DIContainer singleton
    """
    global _container
    if _container is None:
        _container = DIContainer()
    return _container


def cleanup_container() -> None:
    """Clean up the global DI container."""
    global _container
    if _container is not None:
        _container.cleanup()
        _container = None
