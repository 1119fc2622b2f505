"""Directory listener: polling, duplicate suppression and delivery."""

from smbconnector.listener.directory_listener import Consumer, DirectoryListener, ListenerState
from smbconnector.listener.scheduler import Scheduler, ThreadScheduler
from smbconnector.listener.watermark import WatermarkStore

__all__ = [
    "Consumer",
    "DirectoryListener",
    "ListenerState",
    "Scheduler",
    "ThreadScheduler",
    "WatermarkStore",
]
