"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/cancel.py
Cooperative cancellation token passed explicitly into every long-running stage.
"""
import threading

from dupekeep.core.errors import ProcessStopped


class CancellationToken:
    """
    Thread-safe stop flag.
    Stages poll it at work-unit boundaries; in-flight reads are never interrupted.
    """

    def __init__(self):
        self._event = threading.Event()

    def stop(self) -> None:
        """Requests all stages to finish their current unit and exit."""
        self._event.set()

    def is_stopped(self) -> bool:
        """Returns True if a stop has been requested."""
        return self._event.is_set()

    def raise_if_stopped(self) -> None:
        if self._event.is_set():
            raise ProcessStopped()

    def __call__(self) -> bool:
        # Usable wherever a stopped_flag callable is expected
        return self.is_stopped()
