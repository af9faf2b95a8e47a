"""Core scheduling engine: configuration, command channel and restart cascades."""

from rcon_scheduler.core.channel import CommandChannel, InboundFrame
from rcon_scheduler.core.config import ConfigurationError, MainConfig, ServerConfig, load_main_config
from rcon_scheduler.core.orchestrator import Orchestrator
from rcon_scheduler.core.schedule import next_occurrence
from rcon_scheduler.core.scheduler import ArmedCascade, RestartScheduler

__all__ = [
    "ArmedCascade",
    "CommandChannel",
    "ConfigurationError",
    "InboundFrame",
    "MainConfig",
    "Orchestrator",
    "RestartScheduler",
    "ServerConfig",
    "load_main_config",
    "next_occurrence",
]
