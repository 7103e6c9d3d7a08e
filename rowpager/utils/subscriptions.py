class SignalSubscriptions:
    """Holds signal connections so they can all be released together.

    Usable as a context manager; leaving the block releases every
    connection made through it.
    """

    def __init__(self):
        self._connections = []

    def connect(self, signal, slot):
        """Connect `slot` to `signal` and return the connection handle."""
        connection = signal.connect(slot)
        self._connections.append((signal, slot))
        return connection

    def release_all(self):
        while self._connections:
            signal, slot = self._connections.pop()
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                # Sender already deleted or connection already gone
                pass

    def __len__(self):
        return len(self._connections)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release_all()
        return False
