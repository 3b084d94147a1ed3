"""Core framework for the Homeboard relay.

Provides the building blocks for wiring any external integration to
every connected dashboard.

Architecture:
    Source      -- wraps one integration, enabled by its credentials
    TaskRunner  -- runs outbound calls on a thread pool, logs and drops failures
    EventBus    -- fans tagged payloads out to all clients, keeps the latest per tag
    MotionGate  -- turns noisy sensor edges into single wake triggers
    Registry    -- source types and client command handlers by name
    HomeRelay   -- (core.relay) the context object tying them together
"""

from core.event_bus import EventBus
from core.data_source import Source, RelayError, InvalidCommandValue
from core.motion_gate import MotionGate
from core.registry import COMMAND_REGISTRY, SOURCE_REGISTRY, register_command, register_source
from core.tasks import TaskRunner

__all__ = [
    "EventBus",
    "Source",
    "RelayError",
    "InvalidCommandValue",
    "MotionGate",
    "TaskRunner",
    "COMMAND_REGISTRY",
    "SOURCE_REGISTRY",
    "register_command",
    "register_source",
]
