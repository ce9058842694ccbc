import threading


class CancellationToken:
    """
    Thread-safe flag a caller sets to abort a run at the next model call.

    The planning loop checks the flag before and after each model call.
    A request already in flight is not interrupted: a cancel issued while
    the backend is generating takes effect when the call returns or hits
    the configured model ``timeout``, and the response is then discarded.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def request_cancel(self) -> None:
        self._event.set()
