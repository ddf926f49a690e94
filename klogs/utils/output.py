from rich.console import Console
from rich.text import Text

from klogs.core.abstract.output_sink import BaseOutputSink


class ConsoleSink(BaseOutputSink):
    """
    Writes lines to a rich console.

    Lines carry ANSI color codes, rich decides whether the terminal can show them
    (colors are dropped when the output is piped or NO_COLOR is set).
    """

    def __init__(self, console: Console) -> None:
        self.console = console

    def write_line(self, text: str) -> None:
        self.console.print(Text.from_ansi(text), soft_wrap=True, highlight=False)
