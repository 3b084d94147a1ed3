"""Source and command registries for the Homeboard relay.

Register source types and client command handlers by name. The relay
reads configuration and instantiates the right source classes by
looking them up here; inbound client messages are dispatched through
the command table.

Usage:
    @register_source("news")
    class NewsSource(Source):
        ...

    @register_command("news")
    def fetch_news(relay, payload):
        ...
"""

import logging

logger = logging.getLogger(__name__)

SOURCE_REGISTRY = {}
COMMAND_REGISTRY = {}


def register_source(name):
    """Decorator to register a source class by type name."""
    def decorator(cls):
        SOURCE_REGISTRY[name] = cls
        logger.debug("Registered source type: %s -> %s", name, cls.__name__)
        return cls
    return decorator


def register_command(*names):
    """Decorator to register a handler for one or more inbound message names."""
    def decorator(func):
        for name in names:
            COMMAND_REGISTRY[name] = func
            logger.debug("Registered command: %s -> %s", name, func.__name__)
        return func
    return decorator
