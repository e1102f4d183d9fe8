from typing import Callable, List


class Signal:
    """
    List of callbacks that are called in connection order on emit().

    >>> received = []
    >>> s = Signal()
    >>> s.connect(received.append)
    >>> s.emit("hello")
    >>> received
    ['hello']
    """

    def __init__(self):
        self._slots: List[Callable] = []

    def connect(self, slot: Callable):
        if slot not in self._slots:
            self._slots.append(slot)

    def disconnect(self, slot: Callable):
        if slot in self._slots:
            self._slots.remove(slot)

    def disconnect_all(self):
        self._slots.clear()

    def emit(self, *args):
        for slot in list(self._slots):
            slot(*args)
