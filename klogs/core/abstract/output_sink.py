import abc


class BaseOutputSink(abc.ABC):
    """Receives fully formatted text lines. Writes are expected to be fast."""

    @abc.abstractmethod
    def write_line(self, text: str) -> None:
        pass
