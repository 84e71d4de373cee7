"""Transfer orchestration, adapter registry and CLI envelopes."""

from tablebridge.engine.orchestrator import TransferOrchestrator

__all__ = ["TransferOrchestrator"]
