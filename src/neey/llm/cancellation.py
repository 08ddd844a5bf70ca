class CancellationToken:
    """Cooperative cancellation flag owned by one streaming task.

    A fresh token is created for every send, so a cancel request can never
    leak into a later request. Checks are polling-based: the stream stops at
    its next poll point, not mid-read.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
