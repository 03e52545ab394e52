"""ID generators (CUID2 primary keys, message bus consumer names)."""

import os
import socket

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_consumer_name(durable_name: str) -> str:
    """Build a consumer name unique to this process within a consumer group.

    Format: '<durable>-<host>-<pid>'. Two replicas sharing a durable name
    then split the group's messages instead of stealing each other's.
    """
    return f"{durable_name}-{socket.gethostname()}-{os.getpid()}"
